"""
Subscription Routes

Upgrade endpoints. Payment itself happens with the payment provider; the
client reports the confirmed plan to /subscriptions/payment-success.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from tradegenie.config.settings import Settings, get_settings
from tradegenie.domain.subscription import request_upgrade, upgrade_after_payment
from tradegenie.domain.user import PlanType, UserProfile


logger = logging.getLogger(__name__)

router = APIRouter()


class UpgradeRequest(BaseModel):
    """Upgrade request. Without a plan the default paid plan is used."""
    user: UserProfile
    plan: Optional[PlanType] = None


class PaymentSuccessRequest(BaseModel):
    """Payment-success signal from the payment provider."""
    user: UserProfile
    plan: str = Field(..., min_length=1, max_length=50)


@router.post("/subscriptions/upgrade")
async def upgrade_subscription(
    request: UpgradeRequest,
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """Upgrade directly, or report that payment is required."""
    return request_upgrade(request.user, request.plan, settings=settings).to_dict()


@router.post("/subscriptions/payment-success", response_model=UserProfile)
async def payment_success(
    request: PaymentSuccessRequest,
    settings: Settings = Depends(get_settings),
):
    """Upgrade after a confirmed payment for the named plan."""
    logger.info(f"Payment confirmed for user {request.user.id}, plan {request.plan}")
    return upgrade_after_payment(request.user, request.plan, settings=settings)
