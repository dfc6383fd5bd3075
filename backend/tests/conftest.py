"""
Test configuration and fixtures for the TradeGenie trial gate.

Provides shared fixtures for unit and API tests. Time is passed to the
domain functions through their `now` argument instead of being patched.
"""

import pytest
from datetime import datetime, timezone
from typing import AsyncGenerator

from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from tradegenie.config.settings import Settings
from tradegenie.domain.user import PlanType, SubscriptionStatus, UserProfile


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def app():
    """Get the FastAPI application."""
    from tradegenie.main import app
    return app


@pytest.fixture
def client(app):
    """Get synchronous test client."""
    return TestClient(app)


@pytest.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Get async test client."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# =============================================================================
# Settings / Clock Fixtures
# =============================================================================

@pytest.fixture
def test_settings():
    """Settings with a small credit allowance for easy arithmetic."""
    return Settings(
        trial_length_days=14,
        trial_credit_allowance=10,
        trial_warning_days=3,
        low_credit_ratio=0.2,
        credit_costs={"document_generation": 5, "risk_analysis": 3, "chat_message": 1},
        default_paid_plan="professional",
        non_trial_signup_status="active",
        non_trial_signup_plan="professional",
    )


@pytest.fixture
def now():
    """Fixed evaluation time."""
    return datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Sample Data Fixtures
# =============================================================================

@pytest.fixture
def sample_identity():
    """Identity provider result for a trial signup."""
    return {
        "id": "user-123",
        "email": "Trader@Example.com",
        "full_name": "Ada Trader",
        "company": "Harbor Imports Ltd",
    }


@pytest.fixture
def trial_user(sample_identity, test_settings, now):
    """Fresh trial user created at `now` with 10 credits."""
    from tradegenie.domain.trial import create_user
    return create_user(sample_identity, True, now=now, settings=test_settings)


@pytest.fixture
def pro_user():
    """Pre-provisioned paid account."""
    return UserProfile(
        id="pro-demo-user",
        email="pro@tradegenie.com",
        full_name="Pro Demo User",
        company="TradeGenie Inc.",
        subscription_status=SubscriptionStatus.ACTIVE,
        plan_type=PlanType.PROFESSIONAL,
    )
