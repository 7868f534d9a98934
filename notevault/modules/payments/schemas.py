"""
Payments Module - Pydantic Schemas
"""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from notevault.core.pagination import Pagination


class CreateOrderRequest(BaseModel):
    note_ids: list[uuid.UUID] = Field(default_factory=list, max_length=50)
    coupon_code: str | None = Field(None, min_length=4, max_length=20)


class OrderNote(BaseModel):
    id: uuid.UUID
    title: str
    price: float


class CreateOrderResponse(BaseModel):
    order_id: str = Field(..., description="Gateway order id passed to the checkout widget")
    payment_order_id: uuid.UUID
    amount: float = Field(..., description="Amount payable after discounts (INR)")
    total_amount: float
    discount_amount: float = Field(..., description="Bulk discount (INR)")
    coupon_code: str | None = None
    coupon_discount: float = 0
    currency: str = "INR"
    key: str = Field(..., description="Public gateway key for the checkout widget")
    notes: list[OrderNote] = []
    is_idempotent: bool = False


class VerifyPaymentRequest(BaseModel):
    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)


class VerifyPaymentResponse(BaseModel):
    success: bool = True
    message: str = "Payment verified"
    payment_order_id: uuid.UUID | None = None
    transaction_ids: list[str] = []
    note_ids: list[uuid.UUID] = []


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    transaction_id: str
    buyer_id: uuid.UUID
    seller_id: uuid.UUID
    note_id: uuid.UUID
    note_title: str | None = None
    amount_inr: float
    coupon_discount_inr: float = 0
    final_amount_inr: float
    commission_inr: float
    seller_earning_inr: float
    status: str
    payment_method: str
    gateway_order_id: str
    gateway_payment_id: str | None = None
    escrow_release_at: datetime | None = None
    escrow_released: bool
    created_at: datetime


class TransactionListResponse(BaseModel):
    items: list[TransactionResponse]
    pagination: Pagination
