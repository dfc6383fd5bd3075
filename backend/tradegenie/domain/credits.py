"""
Credit Meter

Tracks the trial credit allowance. Admission (can_consume) and consumption
(consume) are separate calls so the caller can branch to the upgrade flow on
denial without having changed anything. attempt_gated_action pairs the two
for callers that gate a feature in one step.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from tradegenie.config.settings import Settings, get_settings
from tradegenie.domain.trial import evaluate_trial
from tradegenie.domain.user import CreditLevel, CreditsInfo, UserProfile
from tradegenie.infrastructure.exceptions import ValidationError


logger = logging.getLogger(__name__)

DEFAULT_ACTION_COST = 1


class GateReason(str, Enum):
    """Why a gated action was admitted or denied."""
    ALLOWED = "allowed"
    UNMETERED = "unmetered"
    CREDITS_EXHAUSTED = "credits_exhausted"
    TRIAL_EXPIRED = "trial_expired"
    IN_PROGRESS = "in_progress"


@dataclass(frozen=True)
class GateResult:
    """
    Outcome of a gated action attempt.
    
    `user` is the record the caller must adopt: the consumed record when
    allowed, the untouched input otherwise.
    """
    allowed: bool
    user: Optional[UserProfile]
    cost: int
    reason: GateReason

    @property
    def payment_required(self) -> bool:
        return self.reason in (GateReason.CREDITS_EXHAUSTED, GateReason.TRIAL_EXPIRED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "reason": self.reason.value,
            "cost": self.cost,
            "payment_required": self.payment_required,
            "user": self.user.model_dump(mode="json") if self.user else None,
        }


def _is_metered(user: Optional[UserProfile]) -> bool:
    return user is not None and user.is_trial


def cost_of(action_kind: str, *, settings: Optional[Settings] = None) -> int:
    """Credit cost of an action kind. Unknown kinds cost one credit."""
    settings = settings or get_settings()
    return settings.credit_costs.get(action_kind, DEFAULT_ACTION_COST)


def credits_info(user: Optional[UserProfile]) -> CreditsInfo:
    """Remaining, used and max credits. Non-trial users are unbounded."""
    if not _is_metered(user):
        return CreditsInfo.unlimited()
    return CreditsInfo(
        credits=user.credits_max - user.credits_used,
        used=user.credits_used,
        max=user.credits_max,
    )


def credit_level(
    user: Optional[UserProfile],
    *,
    settings: Optional[Settings] = None,
) -> CreditLevel:
    """Bucket remaining credits for display."""
    if not _is_metered(user):
        return CreditLevel.UNLIMITED
    
    settings = settings or get_settings()
    remaining = user.credits_max - user.credits_used
    
    if remaining <= 0:
        return CreditLevel.EXHAUSTED
    if remaining <= user.credits_max * settings.low_credit_ratio:
        return CreditLevel.LOW
    return CreditLevel.HEALTHY


def _check_cost(cost: int) -> None:
    if cost < 0:
        raise ValidationError(f"Credit cost must not be negative, got {cost}", fields=["cost"])


def can_consume(user: Optional[UserProfile], cost: int) -> bool:
    """Admission check. Read-only."""
    _check_cost(cost)
    if not _is_metered(user):
        return True
    return user.credits_used + cost <= user.credits_max


def consume(user: UserProfile, cost: int) -> UserProfile:
    """
    Record `cost` credits as used.
    
    Must follow a successful can_consume for the same cost. A call that
    would overrun the allowance is a caller bug: it is logged and the
    result is clamped at credits_max.
    
    Returns:
        A new record with credits_used increased; non-trial users are
        returned unchanged
    """
    _check_cost(cost)
    if not _is_metered(user):
        return user
    
    credits_used = user.credits_used + cost
    if credits_used > user.credits_max:
        logger.warning(
            f"consume({cost}) for user {user.id} without admission: "
            f"{user.credits_used}/{user.credits_max} used, clamping at max"
        )
        credits_used = user.credits_max
    
    return user.model_copy(update={"credits_used": credits_used})


def attempt_gated_action(
    user: Optional[UserProfile],
    action_kind: str,
    *,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> GateResult:
    """
    Resolve cost, check admission and consume in one step.
    
    Trial users are gated on the derived trial status, not only on the
    stored subscription_status: a lapsed trial is denied even with credits
    left.
    """
    settings = settings or get_settings()
    cost = cost_of(action_kind, settings=settings)
    
    if not _is_metered(user):
        return GateResult(allowed=True, user=user, cost=0, reason=GateReason.UNMETERED)
    
    trial = evaluate_trial(user, now=now, settings=settings)
    if trial is not None and trial.is_expired:
        logger.info(f"Denied {action_kind} for user {user.id}: trial expired")
        return GateResult(allowed=False, user=user, cost=cost, reason=GateReason.TRIAL_EXPIRED)
    
    if not can_consume(user, cost):
        logger.info(
            f"Denied {action_kind} for user {user.id}: needs {cost}, "
            f"{user.credits_max - user.credits_used} left"
        )
        return GateResult(allowed=False, user=user, cost=cost, reason=GateReason.CREDITS_EXHAUSTED)
    
    return GateResult(
        allowed=True,
        user=consume(user, cost),
        cost=cost,
        reason=GateReason.ALLOWED,
    )
