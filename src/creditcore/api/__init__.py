"""API routers."""

from creditcore.api.credits import deduct_validation_handler
from creditcore.api.credits import router as credits_router

__all__ = ["credits_router", "deduct_validation_handler"]
