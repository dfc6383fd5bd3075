# API Routes Module
from tradegenie.api.routes import (
    trial,
    credits,
    subscriptions,
)

__all__ = [
    "trial",
    "credits",
    "subscriptions",
]
