"""
Trial Routes

Stateless endpoints for user creation and trial status. The client posts
its current record and gets the replacement back; nothing is stored.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from tradegenie.config.settings import Settings, get_settings
from tradegenie.domain.credits import credit_level, credits_info
from tradegenie.domain.trial import create_user, evaluate_trial, expire_trial
from tradegenie.domain.user import UserProfile


router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================

class CreateUserRequest(BaseModel):
    """Identity provider result plus the signup flow it came from."""
    identity: Dict[str, Any]
    is_trial_signup: bool = False


class UserRequest(BaseModel):
    """Request carrying the caller's current user record."""
    user: UserProfile


class StatusRequest(BaseModel):
    """Status request. A signed-out caller posts no user."""
    user: Optional[UserProfile] = None


class TrialStatusResponse(BaseModel):
    """Derived trial and credit status."""
    trial: Optional[Dict[str, Any]] = None
    credits: Dict[str, Any]
    credit_level: str


# ============================================================================
# Endpoints
# ============================================================================

@router.post("/trial/users", response_model=UserProfile, status_code=201)
async def create_trial_user(
    request: CreateUserRequest,
    settings: Settings = Depends(get_settings),
):
    """Create a user record from an identity provider result."""
    return create_user(request.identity, request.is_trial_signup, settings=settings)


@router.post("/trial/status", response_model=TrialStatusResponse)
async def get_trial_status(
    request: StatusRequest,
    settings: Settings = Depends(get_settings),
):
    """Evaluate trial window and credits for the posted record."""
    trial = evaluate_trial(request.user, settings=settings)
    return TrialStatusResponse(
        trial=trial.to_dict() if trial else None,
        credits=credits_info(request.user).to_dict(),
        credit_level=credit_level(request.user, settings=settings).value,
    )


@router.post("/trial/expire", response_model=UserProfile)
async def expire_lapsed_trial(request: UserRequest):
    """Mark the posted record expired if its trial has lapsed."""
    return expire_trial(request.user)
