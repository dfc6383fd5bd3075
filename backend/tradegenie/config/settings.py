"""
Application Settings for TradeGenie

Centralized configuration using Pydantic Settings with .env support.
Every tunable of the trial gate (trial length, credit allowance, the
credit-cost table, default paid plan) lives here and nowhere else.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tradegenie.infrastructure.exceptions import ConfigurationError


DEFAULT_CREDIT_COSTS = {
    "document_generation": 5,
    "risk_analysis": 3,
    "chat_message": 1,
}


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    
    Non-trial signups are an explicit policy decision:
    - NON_TRIAL_SIGNUP_STATUS=active: direct signups are paid accounts (default)
    - NON_TRIAL_SIGNUP_STATUS=expired: direct signups land without access
      until they go through the payment flow
    """
    
    # Application Settings
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    
    # CORS Configuration
    allowed_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]
    
    # Trial window
    trial_length_days: int = Field(default=14, ge=1)
    trial_warning_days: int = Field(default=3, ge=0)
    
    # Trial credits
    trial_credit_allowance: int = Field(default=50, ge=0)
    low_credit_ratio: float = Field(default=0.2, ge=0.0, le=1.0)
    credit_costs: dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_CREDIT_COSTS)
    )
    
    # Plans
    default_paid_plan: Literal["professional", "enterprise"] = "professional"
    non_trial_signup_status: Literal["active", "expired"] = "active"
    non_trial_signup_plan: Literal["professional", "enterprise"] = "professional"
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )
    
    @model_validator(mode="after")
    def validate_credit_costs(self) -> "Settings":
        """Every metered action must cost at least one credit."""
        invalid = sorted(kind for kind, cost in self.credit_costs.items() if cost < 1)
        if invalid:
            raise ValueError(
                f"CREDIT_COSTS must be positive integers, got non-positive cost for: {', '.join(invalid)}"
            )
        return self
    
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"
    
    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    try:
        return Settings()
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid TradeGenie configuration",
            missing_keys=[".".join(str(part) for part in err["loc"]) for err in e.errors()],
            original_error=e,
        )


# Convenience export for direct import
settings = get_settings()
