"""
User Domain Models

The user record the trial gate operates on, plus the derived values the
evaluator and credit meter hand back to the UI layer.

UserProfile is frozen: every core operation returns a new record and the
caller replaces its copy.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle status."""
    TRIAL = "trial"
    ACTIVE = "active"
    EXPIRED = "expired"


class PlanType(str, Enum):
    """Plan tiers. Only meaningful once the subscription is active."""
    TRIAL = "trial"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"


class CreditLevel(str, Enum):
    """Coarse credit health shown in the trial banner."""
    UNLIMITED = "unlimited"
    HEALTHY = "healthy"
    LOW = "low"
    EXHAUSTED = "exhausted"


# =============================================================================
# Domain Entities
# =============================================================================

class IdentityResult(BaseModel):
    """Authenticated identity handed over by the identity provider."""
    id: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    full_name: Optional[str] = None
    company: Optional[str] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")

    @field_validator("id", "email")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @property
    def display_name(self) -> Optional[str]:
        return self.full_name or self.user_metadata.get("full_name")

    @property
    def company_name(self) -> Optional[str]:
        return self.company or self.user_metadata.get("company")


class UserProfile(BaseModel):
    """Core user record. Replaced wholesale, never mutated in place."""
    id: str
    email: str
    full_name: Optional[str] = None
    company: Optional[str] = None
    subscription_status: SubscriptionStatus
    plan_type: PlanType
    trial_start_date: Optional[datetime] = None
    trial_end_date: Optional[datetime] = None
    trial_days_remaining: Optional[int] = Field(None, ge=0)
    credits_used: int = Field(0, ge=0)
    credits_max: int = Field(0, ge=0)

    model_config = ConfigDict(frozen=True)

    @field_validator("trial_start_date", "trial_end_date")
    @classmethod
    def normalize_to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        # Naive datetimes are taken to be UTC
        if v is None:
            return v
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @model_validator(mode="after")
    def check_invariants(self) -> "UserProfile":
        if self.credits_used > self.credits_max:
            raise ValueError(
                f"credits_used ({self.credits_used}) exceeds credits_max ({self.credits_max})"
            )
        if (
            self.trial_start_date is not None
            and self.trial_end_date is not None
            and self.trial_end_date < self.trial_start_date
        ):
            raise ValueError("trial_end_date precedes trial_start_date")
        return self

    @property
    def is_trial(self) -> bool:
        return self.subscription_status == SubscriptionStatus.TRIAL

    @property
    def is_active(self) -> bool:
        return self.subscription_status == SubscriptionStatus.ACTIVE


# =============================================================================
# Derived Values
# =============================================================================

@dataclass(frozen=True)
class TrialStatus:
    """
    Live view of a trial window.
    
    Derived on every call from the wall clock. is_expired can be True while
    the stored subscription_status is still "trial".
    """
    days_remaining: int
    is_expired: bool
    ends_soon: bool
    trial_end_date: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "days_remaining": self.days_remaining,
            "is_expired": self.is_expired,
            "ends_soon": self.ends_soon,
            "trial_end_date": self.trial_end_date.isoformat(),
        }


@dataclass(frozen=True)
class CreditsInfo:
    """Remaining/used/max credits. Unmetered users report math.inf."""
    credits: Union[int, float]
    used: int
    max: Union[int, float]

    @classmethod
    def unlimited(cls) -> "CreditsInfo":
        return cls(credits=math.inf, used=0, max=math.inf)

    @property
    def is_unlimited(self) -> bool:
        return math.isinf(self.max)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API response (JSON has no infinity)."""
        if self.is_unlimited:
            return {"credits": None, "used": self.used, "max": None, "unlimited": True}
        return {
            "credits": self.credits,
            "used": self.used,
            "max": self.max,
            "unlimited": False,
        }
