"""FastAPI application entry point."""

import logging
import sys

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from creditcore.api import credits_router, deduct_validation_handler
from creditcore.settings import get_settings

settings = get_settings()


def configure_logging(level: str) -> None:
    """Install a stdout handler on the creditcore logger tree."""
    root = logging.getLogger("creditcore")
    root.setLevel(level.upper())
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        root.addHandler(handler)


configure_logging(settings.log_level)

app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    debug=settings.debug,
)

app.include_router(credits_router)
app.add_exception_handler(RequestValidationError, deduct_validation_handler)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "creditcore API", "status": "ok"}


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
