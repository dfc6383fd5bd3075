"""
Credit Routes

Credit-cost table and the gated-action endpoint. A denied attempt returns
200 with allowed=false; the client opens its payment surface.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from tradegenie.config.settings import Settings, get_settings
from tradegenie.domain.credits import DEFAULT_ACTION_COST, attempt_gated_action
from tradegenie.domain.user import UserProfile


router = APIRouter()


class AttemptActionRequest(BaseModel):
    """Attempt one metered action on behalf of the posted record."""
    user: UserProfile
    action_kind: str = Field(..., min_length=1, max_length=100)


@router.get("/credits/costs")
async def get_credit_costs(settings: Settings = Depends(get_settings)):
    """Credit cost per action kind."""
    return {
        "costs": dict(settings.credit_costs),
        "default_cost": DEFAULT_ACTION_COST,
    }


@router.post("/credits/attempt")
async def attempt_action(
    request: AttemptActionRequest,
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """Check admission and consume credits in one step."""
    result = attempt_gated_action(request.user, request.action_kind, settings=settings)
    return result.to_dict()
