"""
Refunds Module - Pydantic Schemas
"""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from notevault.modules.refunds.models import RefundReason


class RefundCreate(BaseModel):
    transaction_id: str = Field(..., min_length=1, max_length=50, description="Transaction UUID or TXN_ reference")
    reason: RefundReason
    reason_details: str | None = Field(None, max_length=1000)


class RefundDecision(BaseModel):
    notes: str | None = Field(None, max_length=500)


class RefundResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    refund_reference: str
    transaction_id: uuid.UUID
    note_id: uuid.UUID
    amount_inr: float
    reason: str
    reason_details: str | None = None
    status: str
    gateway_refund_id: str | None = None
    admin_notes: str | None = None
    processed_at: datetime | None = None
    created_at: datetime
