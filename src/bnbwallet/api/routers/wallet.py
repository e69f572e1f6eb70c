"""Wallet operation endpoints.

The process holds exactly one wallet session; every request operates on
it. Responses always use the ``{success, data?, error?}`` shape with
HTTP 200, since a failed operation is a normal outcome, not a transport
error.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Request

from bnbwallet.contracts.results import OperationResponse
from bnbwallet.operations.service import WalletService
from bnbwallet.operations.validator import operation_catalogue

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/wallet")


def get_wallet_service(request: Request) -> WalletService:
    return request.app.state.wallet_service


@router.post("/operations", response_model=OperationResponse, response_model_exclude_none=True)
async def execute_operation(
    payload: dict[str, Any] = Body(...),
    service: WalletService = Depends(get_wallet_service),
) -> OperationResponse:
    """Execute one wallet operation.

    Accepts ``{"operation": ..., "parameters": {...}}`` or the flat form
    ``{"operation": ..., "toAddress": ..., "amount": ...}``.
    """
    return await service.handle(payload)


@router.get("/operations")
async def list_operations() -> dict:
    """List supported operations with their parameters and preconditions."""
    operations = operation_catalogue()
    return {"operations": operations, "total": len(operations)}


@router.get("/session")
async def get_session(service: WalletService = Depends(get_wallet_service)) -> dict:
    """Public view of the current session (never includes secrets)."""
    return service.snapshot()
