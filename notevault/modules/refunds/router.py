"""
Refund Endpoints

- POST /api/v1/refunds                    - Request a refund for a purchase (buyer)
- GET  /api/v1/refunds                    - My refund requests (buyer)
- GET  /api/v1/refunds/pending            - Requests awaiting a decision (admin)
- POST /api/v1/refunds/{id}/approve       - Refund through the gateway (admin)
- POST /api/v1/refunds/{id}/reject        - Decline the request (admin)
"""
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from notevault.core.database import get_db
from notevault.modules.auth.dependencies import CurrentAdmin, CurrentUser
from notevault.modules.payments.gateway import PaymentGateway, get_payment_gateway
from notevault.modules.refunds.schemas import RefundCreate, RefundDecision, RefundResponse
from notevault.modules.refunds.service import RefundService

router = APIRouter(prefix="/refunds", tags=["Refunds"])


async def get_refund_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    gateway: Annotated[PaymentGateway, Depends(get_payment_gateway)],
) -> RefundService:
    return RefundService(db, gateway)


RefundServiceDep = Annotated[RefundService, Depends(get_refund_service)]


@router.post(
    "",
    response_model=RefundResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request Refund",
    description="""
- Only `SUCCESS` purchases, within the refund window after payment
- One request per purchase; a limited number of requests per window
- Errors: `TRANSACTION_NOT_FOUND`, `NOT_REFUNDABLE`, `REFUND_EXISTS` (409),
  `REFUND_WINDOW_EXPIRED`, `REFUND_LIMIT_REACHED` (429 with `Retry-After`)
    """,
)
async def request_refund(
    payload: RefundCreate,
    current_user: CurrentUser,
    service: RefundServiceDep,
) -> RefundResponse:
    refund = await service.request_refund(current_user, payload)
    return RefundResponse.model_validate(refund)


@router.get("", response_model=list[RefundResponse], summary="My Refunds")
async def list_my_refunds(current_user: CurrentUser, service: RefundServiceDep) -> list[RefundResponse]:
    refunds = await service.list_my_refunds(current_user)
    return [RefundResponse.model_validate(r) for r in refunds]


@router.get("/pending", response_model=list[RefundResponse], summary="Pending Refunds")
async def list_pending_refunds(current_user: CurrentAdmin, service: RefundServiceDep) -> list[RefundResponse]:
    refunds = await service.list_pending()
    return [RefundResponse.model_validate(r) for r in refunds]


@router.post("/{refund_id}/approve", response_model=RefundResponse, summary="Approve Refund")
async def approve_refund(
    refund_id: uuid.UUID,
    payload: RefundDecision,
    current_user: CurrentAdmin,
    service: RefundServiceDep,
) -> RefundResponse:
    refund = await service.approve(refund_id, payload.notes)
    return RefundResponse.model_validate(refund)


@router.post("/{refund_id}/reject", response_model=RefundResponse, summary="Reject Refund")
async def reject_refund(
    refund_id: uuid.UUID,
    payload: RefundDecision,
    current_user: CurrentAdmin,
    service: RefundServiceDep,
) -> RefundResponse:
    refund = await service.reject(refund_id, payload.notes)
    return RefundResponse.model_validate(refund)
