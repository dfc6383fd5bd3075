"""
TradeGenie Trial Gate - FastAPI Application

Main entry point for the backend API.
Exposes the trial, credit and subscription rules as stateless endpoints.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tradegenie.config.settings import settings
from tradegenie.infrastructure.exceptions import (
    TradeGenieError,
    ValidationError,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info(
        f"TradeGenie trial gate starting in {settings.environment} mode "
        f"({settings.trial_length_days}-day trial, {settings.trial_credit_allowance} credits)"
    )
    yield
    logger.info("TradeGenie trial gate shutting down...")


app = FastAPI(
    title="TradeGenie Trial Gate",
    description="Trial, credit and subscription rules for TradeGenie clients",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS configuration from Settings
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Exception Handlers
# ============================================================================

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    """Handle validation errors."""
    return JSONResponse(
        status_code=400,
        content=exc.to_dict(),
    )


@app.exception_handler(TradeGenieError)
async def general_error_handler(request: Request, exc: TradeGenieError):
    """Handle all other application errors."""
    logger.error(f"Unhandled {exc.__class__.__name__}: {exc.message}")
    return JSONResponse(
        status_code=500,
        content=exc.to_dict(),
    )


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "tradegenie-trial-gate"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "TradeGenie Trial Gate API",
        "version": "1.0.0",
        "docs": "/docs",
    }


# ============================================================================
# Import and register routers
# ============================================================================

from tradegenie.api.routes import trial, credits, subscriptions

app.include_router(trial.router, prefix="/api", tags=["Trial"])
app.include_router(credits.router, prefix="/api", tags=["Credits"])
app.include_router(subscriptions.router, prefix="/api", tags=["Subscriptions"])
