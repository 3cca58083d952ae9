"""Credit balance, deduction and reset sweep API routes."""

import hmac
import logging
from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from creditcore.contracts.enums import StorageBackend
from creditcore.contracts.models import (
    Affordability,
    AuditEntry,
    BalanceSnapshot,
    DeductResult,
    SweepResult,
)
from creditcore.core import (
    AccountNotFound,
    CostTable,
    CreditError,
    CreditLedger,
    CycleScheduler,
    InMemoryAccountStore,
    JsonLogAuditSink,
    StorageUnavailable,
    TierPolicy,
    build_cycle_policy,
)
from creditcore.core.store import AccountStore
from creditcore.settings import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["credits"])

DEDUCT_PATH = "/credits/deduct"

_ledger: CreditLedger | None = None


def build_ledger(settings: Settings) -> CreditLedger:
    """Assemble a ledger from settings."""
    store: AccountStore
    if settings.storage_backend == StorageBackend.POSTGRES:
        from creditcore.db.store import PostgresAccountStore

        store = PostgresAccountStore()
    else:
        store = InMemoryAccountStore()
    return CreditLedger(
        store=store,
        costs=CostTable.with_overrides(settings.get_operation_costs()),
        tiers=TierPolicy(),
        cycle=build_cycle_policy(settings.cycle_policy, settings.cycle_length_days),
        sinks=[JsonLogAuditSink()],
        max_retries=settings.storage_max_retries,
        backoff_base_seconds=settings.storage_backoff_base_seconds,
    )


def get_ledger() -> CreditLedger:
    """Get the credit ledger (singleton)."""
    global _ledger
    if _ledger is None:
        _ledger = build_ledger(get_settings())
    return _ledger


def set_ledger(ledger: CreditLedger | None) -> None:
    """Set the credit ledger (for testing)."""
    global _ledger
    _ledger = ledger


def get_scheduler(
    ledger: CreditLedger = Depends(get_ledger),
    settings: Settings = Depends(get_settings),
) -> CycleScheduler:
    return CycleScheduler(ledger, concurrency=settings.sweep_concurrency)


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Identity forwarded by the upstream auth layer."""
    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return x_user_id.strip()


def verify_cron_secret(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Reject sweep calls that do not carry the shared cron secret."""
    secret = settings.cron_secret
    if not secret or authorization is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    if not hmac.compare_digest(authorization, f"Bearer {secret}"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def error_response(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message})


async def deduct_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed deduct bodies are answered like an unknown operation."""
    if request.url.path == DEDUCT_PATH:
        logger.info(f"Rejected deduct body: {exc.errors()}")
        return error_response(status.HTTP_400_BAD_REQUEST, "UnknownOperation", "operation is required")
    return await request_validation_exception_handler(request, exc)


def failure_response(e: Exception) -> JSONResponse:
    """500 body for system failures; the ledger has already logged context."""
    if isinstance(e, StorageUnavailable):
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "StorageUnavailable", "Please retry later"
        )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "InternalError", "Please retry later")


class DeductRequest(BaseModel):
    """Request to charge the caller for a completed operation."""

    operation: str = Field(min_length=1)
    context: dict[str, Any] | None = None
    template_id: str | None = None

    model_config = {"extra": "forbid"}

    def audit_context(self) -> dict[str, Any] | None:
        """Context to record, with template_id folded in when sent."""
        if self.template_id is None:
            return self.context
        return {**(self.context or {}), "template_id": self.template_id}


@router.get("/credits", response_model=BalanceSnapshot)
async def get_credits(
    user_id: str = Depends(get_current_user_id),
    ledger: CreditLedger = Depends(get_ledger),
) -> BalanceSnapshot | JSONResponse:
    """Current balance, tier and secondary counters for the caller."""
    try:
        return await ledger.check_balance(user_id)
    except AccountNotFound as e:
        return error_response(status.HTTP_404_NOT_FOUND, e.code, str(e))
    except Exception as e:
        logger.error(f"Credits lookup failed for {user_id}: {e}")
        return failure_response(e)


@router.get("/credits/check", response_model=Affordability)
async def check_operation(
    operation: str = Query(min_length=1),
    user_id: str = Depends(get_current_user_id),
    ledger: CreditLedger = Depends(get_ledger),
) -> Affordability | JSONResponse:
    """Advisory: can the caller currently afford this operation."""
    try:
        return await ledger.can_afford(user_id, operation)
    except AccountNotFound as e:
        return error_response(status.HTTP_404_NOT_FOUND, e.code, str(e))
    except CreditError as e:
        return error_response(status.HTTP_400_BAD_REQUEST, e.code, str(e))
    except Exception as e:
        logger.error(f"Affordability check failed for {user_id}: {e}")
        return failure_response(e)


@router.post(DEDUCT_PATH, response_model=DeductResult)
async def deduct_credits(
    request: DeductRequest,
    user_id: str = Depends(get_current_user_id),
    ledger: CreditLedger = Depends(get_ledger),
) -> DeductResult | JSONResponse:
    """Charge the caller after the generator reported success."""
    try:
        return await ledger.deduct(user_id, request.operation, request.audit_context())
    except AccountNotFound as e:
        return error_response(status.HTTP_404_NOT_FOUND, e.code, str(e))
    except CreditError as e:
        return error_response(status.HTTP_400_BAD_REQUEST, e.code, str(e))
    except Exception as e:
        logger.error(f"Deduction failed for {user_id} ({request.operation}): {e}")
        return failure_response(e)


@router.get("/credits/history", response_model=list[AuditEntry])
async def credit_history(
    limit: int = Query(default=50, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
    ledger: CreditLedger = Depends(get_ledger),
) -> list[AuditEntry] | JSONResponse:
    """Recent ledger entries for the caller, newest first."""
    try:
        return await ledger.history(user_id, limit)
    except AccountNotFound as e:
        return error_response(status.HTTP_404_NOT_FOUND, e.code, str(e))
    except Exception as e:
        logger.error(f"History lookup failed for {user_id}: {e}")
        return failure_response(e)


@router.post(
    "/reset-sweep",
    response_model=SweepResult,
    dependencies=[Depends(verify_cron_secret)],
)
async def reset_sweep(scheduler: CycleScheduler = Depends(get_scheduler)) -> SweepResult | JSONResponse:
    """Cron-triggered reset of every account whose cycle has ended."""
    try:
        return await scheduler.run_reset_sweep()
    except Exception as e:
        logger.error(f"Reset sweep failed: {e}")
        return failure_response(e)
