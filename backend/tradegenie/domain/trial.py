"""
Trial Lifecycle

Trial factory and trial status evaluator.

- create_user / provision_user build a new UserProfile from an identity result
- evaluate_trial derives days remaining and expiry from the wall clock
- expire_trial is the explicit, caller-triggered trial -> expired transition
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from tradegenie.config.settings import Settings, get_settings
from tradegenie.domain.user import (
    IdentityResult,
    PlanType,
    SubscriptionStatus,
    TrialStatus,
    UserProfile,
)
from tradegenie.infrastructure.exceptions import ValidationError


logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400

IdentityInput = Union[IdentityResult, Mapping[str, Any]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # Naive datetimes are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_identity(identity_result: IdentityInput) -> IdentityResult:
    """
    Validate an identity result from the identity provider.
    
    Raises:
        ValidationError: If id or email is missing or blank
    """
    if isinstance(identity_result, IdentityResult):
        return identity_result
    
    try:
        return IdentityResult.model_validate(identity_result)
    except PydanticValidationError as e:
        fields = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
        raise ValidationError(
            "Identity result is missing required fields",
            fields=fields,
            original_error=e,
        )


def days_until(end: datetime, now: Optional[datetime] = None) -> int:
    """Whole days left until `end`, rounding partial days up and clamping at zero."""
    now = _as_utc(now or _utcnow())
    seconds = (_as_utc(end) - now).total_seconds()
    return max(0, math.ceil(seconds / SECONDS_PER_DAY))


# =============================================================================
# Trial Factory
# =============================================================================

def provision_user(
    identity_result: IdentityInput,
    *,
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
    plan: Optional[PlanType] = None,
    settings: Optional[Settings] = None,
) -> UserProfile:
    """
    Build a user record with no trial window.
    
    Used for direct signups and pre-provisioned paid accounts.
    """
    settings = settings or get_settings()
    identity = parse_identity(identity_result)
    plan = plan or PlanType(settings.default_paid_plan)
    
    if status == SubscriptionStatus.TRIAL or plan == PlanType.TRIAL:
        raise ValidationError(
            "provision_user cannot create trial accounts, use create_user",
            fields=["status", "plan"],
        )
    
    user = UserProfile(
        id=identity.id,
        email=identity.email,
        full_name=identity.display_name,
        company=identity.company_name,
        subscription_status=status,
        plan_type=plan,
    )
    logger.info(f"Provisioned {status.value} user {user.id} on {plan.value} plan")
    return user


def create_user(
    identity_result: IdentityInput,
    is_trial_signup: bool,
    *,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> UserProfile:
    """
    Create a user record from an identity result.
    
    Args:
        identity_result: Identity provider result with at least id and email
        is_trial_signup: True for the free-trial signup flow
        now: Creation time (defaults to the current UTC time)
        settings: Settings override
        
    Returns:
        A trial record with a fresh window and credit allowance, or a record
        following the configured non-trial signup policy
        
    Raises:
        ValidationError: If the identity result lacks id or email
    """
    settings = settings or get_settings()
    
    if not is_trial_signup:
        return provision_user(
            identity_result,
            status=SubscriptionStatus(settings.non_trial_signup_status),
            plan=PlanType(settings.non_trial_signup_plan),
            settings=settings,
        )
    
    identity = parse_identity(identity_result)
    start = _as_utc(now or _utcnow())
    end = start + timedelta(days=settings.trial_length_days)
    
    user = UserProfile(
        id=identity.id,
        email=identity.email,
        full_name=identity.display_name,
        company=identity.company_name,
        subscription_status=SubscriptionStatus.TRIAL,
        plan_type=PlanType.TRIAL,
        trial_start_date=start,
        trial_end_date=end,
        trial_days_remaining=days_until(end, start),
        credits_used=0,
        credits_max=settings.trial_credit_allowance,
    )
    logger.info(
        f"Started {settings.trial_length_days}-day trial for user {user.id} "
        f"with {user.credits_max} credits"
    )
    return user


# =============================================================================
# Trial Status Evaluator
# =============================================================================

def evaluate_trial(
    user: Optional[UserProfile],
    *,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> Optional[TrialStatus]:
    """
    Derive the live trial status for a user.
    
    Returns None for missing users, non-trial users and trials without an
    end date. Pure: the stored subscription_status is never changed here.
    """
    if user is None or not user.is_trial or user.trial_end_date is None:
        return None
    
    settings = settings or get_settings()
    days_remaining = days_until(user.trial_end_date, now)
    
    return TrialStatus(
        days_remaining=days_remaining,
        is_expired=days_remaining == 0,
        ends_soon=0 < days_remaining <= settings.trial_warning_days,
        trial_end_date=_as_utc(user.trial_end_date),
    )


def refresh_trial_days(
    user: UserProfile,
    *,
    now: Optional[datetime] = None,
) -> UserProfile:
    """Recompute the cached trial_days_remaining. Returns `user` itself when already current."""
    if user.trial_end_date is None:
        return user
    
    days_remaining = days_until(user.trial_end_date, now)
    if user.trial_days_remaining == days_remaining:
        return user
    return user.model_copy(update={"trial_days_remaining": days_remaining})


def expire_trial(
    user: UserProfile,
    *,
    now: Optional[datetime] = None,
) -> UserProfile:
    """
    Move a lapsed trial to the expired status.
    
    Only acts when the derived evaluation reports expiry; any other record
    is returned unchanged.
    """
    if user.trial_end_date is None or not user.is_trial:
        return user
    
    days_remaining = days_until(user.trial_end_date, now)
    if days_remaining > 0:
        return user
    
    logger.info(f"Trial for user {user.id} lapsed, marking expired")
    return user.model_copy(
        update={
            "subscription_status": SubscriptionStatus.EXPIRED,
            "trial_days_remaining": 0,
        }
    )
