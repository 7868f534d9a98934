"""
Payments Endpoints

- POST /api/v1/payments/create-order        - Open a checkout for one or more notes
- POST /api/v1/payments/verify              - Verify gateway signature, grant purchases
- GET  /api/v1/payments/transactions        - My purchases (buyer)
- GET  /api/v1/payments/transactions/{ref}  - One transaction (buyer or seller)
- GET  /api/v1/payments/sales               - My sales (seller)
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from notevault.core.database import get_db
from notevault.core.pagination import Pagination
from notevault.modules.auth.dependencies import CurrentSeller, CurrentUser
from notevault.modules.payments.gateway import PaymentGateway, get_payment_gateway
from notevault.modules.payments.models import Transaction
from notevault.modules.payments.schemas import (
    CreateOrderRequest,
    CreateOrderResponse,
    TransactionListResponse,
    TransactionResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from notevault.modules.payments.service import PaymentService

router = APIRouter(prefix="/payments", tags=["Payments"])


async def get_payment_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    gateway: Annotated[PaymentGateway, Depends(get_payment_gateway)],
) -> PaymentService:
    return PaymentService(db, gateway)


PaymentServiceDep = Annotated[PaymentService, Depends(get_payment_service)]


def _to_response(transaction: Transaction, note_title: str | None) -> TransactionResponse:
    response = TransactionResponse.model_validate(transaction)
    response.note_title = note_title
    return response


@router.post(
    "/create-order",
    response_model=CreateOrderResponse,
    summary="Create Order",
    description="""
Creates a gateway order for the selected notes.

- Bulk discount: 3+ notes 5%, 5+ notes 10%, 10+ notes 15%
- An optional `coupon_code` is applied after the bulk discount
- Repeating the request for the same notes and coupon returns the pending
  order (`is_idempotent: true`)
- Errors: `NO_NOTES_SELECTED`, `NOTES_UNAVAILABLE`, `ALREADY_PURCHASED`,
  `SELF_PURCHASE_NOT_ALLOWED`, `INVALID_COUPON`, `INVALID_AMOUNT`
    """,
)
async def create_order(
    payload: CreateOrderRequest,
    current_user: CurrentUser,
    service: PaymentServiceDep,
) -> CreateOrderResponse:
    return await service.create_order(current_user, payload.note_ids, payload.coupon_code)


@router.post("/verify", response_model=VerifyPaymentResponse, summary="Verify Payment")
async def verify_payment(
    payload: VerifyPaymentRequest,
    current_user: CurrentUser,
    service: PaymentServiceDep,
) -> VerifyPaymentResponse:
    return await service.verify_payment(
        current_user,
        payload.razorpay_order_id,
        payload.razorpay_payment_id,
        payload.razorpay_signature,
    )


@router.get("/transactions", response_model=TransactionListResponse, summary="My Transactions")
async def list_transactions(
    current_user: CurrentUser,
    service: PaymentServiceDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> TransactionListResponse:
    rows, total = await service.list_transactions(current_user, page, limit)
    return TransactionListResponse(
        items=[_to_response(t, title) for t, title in rows],
        pagination=Pagination.build(total, page, limit),
    )


@router.get("/transactions/{reference}", response_model=TransactionResponse, summary="Transaction Detail")
async def get_transaction(
    reference: str,
    current_user: CurrentUser,
    service: PaymentServiceDep,
) -> TransactionResponse:
    """``reference`` is the transaction UUID or its ``TXN_`` reference."""
    transaction, title = await service.get_transaction(current_user, reference)
    return _to_response(transaction, title)


@router.get("/sales", response_model=TransactionListResponse, summary="My Sales")
async def list_sales(
    current_user: CurrentSeller,
    service: PaymentServiceDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> TransactionListResponse:
    rows, total = await service.list_sales(current_user, page, limit)
    return TransactionListResponse(
        items=[_to_response(t, title) for t, title in rows],
        pagination=Pagination.build(total, page, limit),
    )
