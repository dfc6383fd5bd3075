"""
Services Module

Caller-side orchestration around the pure trial gate functions.
"""

from tradegenie.services.user_session import UserSession

__all__ = ["UserSession"]
