from fastapi import APIRouter, Depends

from app.api.admin_auth import AdminIdentity, require_admin
from app.dependencies import get_backend_client
from app.domain.bookings.schemas import ActionResult
from app.domain.refunds import service as refund_service
from app.domain.refunds.schemas import RefundQueue
from app.infra.backend import BackendClient

router = APIRouter()


@router.get("/v1/admin/refunds", response_model=RefundQueue)
async def get_refund_queue(
    client: BackendClient = Depends(get_backend_client),
    identity: AdminIdentity = Depends(require_admin),
) -> RefundQueue:
    del identity
    return await refund_service.load_refund_queue(client)


@router.post("/v1/admin/refunds/{booking_id}/process", response_model=ActionResult)
async def process_refund(
    booking_id: str,
    client: BackendClient = Depends(get_backend_client),
    identity: AdminIdentity = Depends(require_admin),
) -> ActionResult:
    del identity
    result = await refund_service.process_refund(client, booking_id)
    return ActionResult.from_function(result)


@router.post("/v1/admin/refunds/{booking_id}/manual", response_model=ActionResult)
async def mark_manual_refund(
    booking_id: str,
    client: BackendClient = Depends(get_backend_client),
    identity: AdminIdentity = Depends(require_admin),
) -> ActionResult:
    del identity
    await refund_service.mark_manual_refund(client, booking_id)
    return ActionResult(ok=True, message="Marked as refunded.")
