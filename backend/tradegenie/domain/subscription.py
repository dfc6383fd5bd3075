"""
Subscription Upgrader

Moves users from trial to a paid plan. Two entry paths end in the same
state:
- direct upgrade while the trial still has credits and time left
- post-payment upgrade once the payment provider confirms a plan
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Union

from tradegenie.config.settings import Settings, get_settings
from tradegenie.domain.credits import credits_info
from tradegenie.domain.trial import days_until
from tradegenie.domain.user import PlanType, SubscriptionStatus, UserProfile
from tradegenie.infrastructure.exceptions import ValidationError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpgradeDecision:
    """Result of an "upgrade" request from the UI."""
    payment_required: bool
    user: UserProfile

    def to_dict(self) -> Dict[str, Any]:
        return {
            "payment_required": self.payment_required,
            "user": self.user.model_dump(mode="json"),
        }


def plan_from_payment(signal: str) -> PlanType:
    """Map a payment-success plan identifier to a paid plan. Anything but enterprise is professional."""
    if signal and signal.strip().lower() == PlanType.ENTERPRISE.value:
        return PlanType.ENTERPRISE
    return PlanType.PROFESSIONAL


def upgrade(
    user: UserProfile,
    plan: Optional[Union[PlanType, str]] = None,
    *,
    settings: Optional[Settings] = None,
) -> UserProfile:
    """
    Activate a paid plan for the user.
    
    Trial dates and credit counters are kept for display but are no longer
    consulted once the subscription is active. Upgrading an active user
    without an explicit plan is a no-op.
    
    Raises:
        ValidationError: If `plan` is the trial plan or not a known plan
    """
    if plan is not None:
        try:
            plan = PlanType(plan)
        except ValueError as e:
            raise ValidationError(f"Unknown plan: {plan}", fields=["plan"], original_error=e)
    
    if plan == PlanType.TRIAL:
        raise ValidationError("Cannot upgrade to the trial plan", fields=["plan"])
    
    if user.is_active and plan is None:
        return user
    
    settings = settings or get_settings()
    plan = plan or PlanType(settings.default_paid_plan)
    
    if user.is_active and user.plan_type == plan:
        return user
    
    logger.info(
        f"Upgrading user {user.id} from {user.subscription_status.value}/"
        f"{user.plan_type.value} to {plan.value}"
    )
    return user.model_copy(
        update={
            "subscription_status": SubscriptionStatus.ACTIVE,
            "plan_type": plan,
        }
    )


def upgrade_after_payment(
    user: UserProfile,
    signal: str,
    *,
    settings: Optional[Settings] = None,
) -> UserProfile:
    """Upgrade once the payment provider reports success for the plan named by `signal`."""
    return upgrade(user, plan_from_payment(signal), settings=settings)


def requires_payment(user: UserProfile, *, now: Optional[datetime] = None) -> bool:
    """
    Whether an upgrade must go through the payment surface.
    
    True for expired accounts and for trials that are out of credits or
    past their end date.
    """
    if user.subscription_status == SubscriptionStatus.EXPIRED:
        return True
    if not user.is_trial:
        return False
    if credits_info(user).credits <= 0:
        return True
    return user.trial_end_date is not None and days_until(user.trial_end_date, now) == 0


def request_upgrade(
    user: UserProfile,
    plan: Optional[PlanType] = None,
    *,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> UpgradeDecision:
    """
    Handle an upgrade request.
    
    Returns the upgraded record directly while the trial still has
    credits and time left, or flags that the payment surface must be
    opened first.
    """
    if requires_payment(user, now=now):
        logger.info(f"User {user.id} cannot upgrade directly, routing to payment")
        return UpgradeDecision(payment_required=True, user=user)
    return UpgradeDecision(payment_required=False, user=upgrade(user, plan, settings=settings))
