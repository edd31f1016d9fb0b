"""Order sync API routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from elitespeed_api.config.settings import settings
from elitespeed_api.core.logger import setup_logger
from order_sync.db.repository import OrderRepository
from order_sync.server.auth import is_valid_webhook_token, verify_api_key

logger = setup_logger(__name__)
router = APIRouter()


def get_state(request: Request):
    """Services wired by app.py on startup."""
    state = request.app.state
    if getattr(state, "reconciliation_service", None) is None:
        raise HTTPException(status_code=503, detail="Sync service not initialized")
    return state


@router.get("/health")
async def health_check(request: Request) -> dict:
    """Health check endpoint.

    Returns:
        {
            "status": "healthy|degraded|unhealthy",
            "service": "order-sync",
            "storage": "ok|error",
            "scheduler": "running|stopped|disabled"
        }
    """
    state = request.app.state
    service = getattr(state, "reconciliation_service", None)
    if service is None:
        return {
            "status": "unhealthy",
            "service": "order-sync",
            "error": "Sync service not initialized",
        }

    try:
        async with service.session_factory() as session:
            storage_ok = await OrderRepository(session).health_check()
    except Exception as e:
        logger.error(f"Health check error: {e}")
        storage_ok = False

    scheduler = getattr(state, "reconciliation_scheduler", None)
    if scheduler is None:
        scheduler_state = "disabled"
    else:
        scheduler_state = "running" if scheduler.is_running else "stopped"

    return {
        "status": "healthy" if storage_ok else "degraded",
        "service": "order-sync",
        "storage": "ok" if storage_ok else "error",
        "scheduler": scheduler_state,
    }


@router.post("/sync/run", dependencies=[Depends(verify_api_key)])
async def trigger_sync(
    request: Request,
    force: bool = Query(False, description="Re-sync delivered orders too"),
    limit: Optional[int] = Query(None, ge=1, description="Maximum orders processed"),
) -> dict:
    """Run one sync now and return its report."""
    state = get_state(request)
    result = await state.reconciliation_service.run_sync(sync_type="manual", force=force, limit=limit)
    return result.to_dict()


@router.get("/sync/status", dependencies=[Depends(verify_api_key)])
async def sync_status(request: Request) -> dict:
    """Recent run reports and the next scheduled run."""
    state = get_state(request)
    scheduler = getattr(state, "reconciliation_scheduler", None)
    next_scheduled = scheduler.get_next_scheduled_sync() if scheduler else None
    return await state.reconciliation_service.get_sync_status(next_scheduled=next_scheduled)


@router.get("/orders/{order_id}/history", dependencies=[Depends(verify_api_key)])
async def order_history(order_id: int, request: Request) -> dict:
    """Status history of one order, oldest first."""
    state = get_state(request)
    async with state.reconciliation_service.session_factory() as session:
        repository = OrderRepository(session)
        order = await repository.get_order(order_id)
        if order is None:
            raise HTTPException(status_code=404, detail="Order not found")
        history = await repository.get_history(order_id)

    return {
        "order": order.to_dict(),
        "history": [entry.to_dict() for entry in history],
    }


@router.post("/webhook/elitespeed")
async def elitespeed_webhook(
    request: Request,
    x_webhook_token: Optional[str] = Header(None),
) -> JSONResponse:
    """Receive a parcel status push from EliteSpeed.

    Expected payload (field names vary):
    {
      "code_shippment": "ES123456",
      "statut": "Livré"
    }
    """
    state = get_state(request)

    try:
        payload = await request.json()
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "Invalid JSON"})

    if not isinstance(payload, dict):
        return JSONResponse(status_code=400, content={"error": "Invalid payload"})

    logger.info("EliteSpeed webhook received", extra={"payload": payload})

    token = x_webhook_token or payload.get("token")
    if not is_valid_webhook_token(token, settings.webhook_token):
        logger.warning("EliteSpeed webhook: invalid token")
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    result = await state.webhook_processor.process_event(payload)
    if result.status_code != 200:
        return JSONResponse(status_code=result.status_code, content={"error": result.message})
    return JSONResponse(status_code=200, content=result.to_dict())
