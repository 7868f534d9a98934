"""
Wallet Module - Pydantic Schemas
"""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class WalletResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    seller_id: uuid.UUID
    available_balance_inr: float
    pending_balance_inr: float
    total_earned_inr: float
    total_withdrawn_inr: float
    minimum_withdrawal_amount: float
    is_active: bool
    updated_at: datetime


class BankDetails(BaseModel):
    account_holder: str = Field(..., min_length=1, max_length=100)
    account_number: str = Field(..., min_length=4, max_length=34)
    ifsc: str = Field(..., pattern=r"^[A-Z]{4}0[A-Z0-9]{6}$")
    upi_id: str | None = Field(None, max_length=100)


class WithdrawalRequest(BaseModel):
    amount_inr: float = Field(..., gt=0)
    bank_details: BankDetails | None = None


class PayoutResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    seller_id: uuid.UUID
    amount_inr: float
    status: str
    admin_notes: str | None = None
    processed_at: datetime | None = None
    created_at: datetime


class WithdrawalResponse(WalletResponse):
    payout: PayoutResponse


class PayoutDecision(BaseModel):
    notes: str | None = Field(None, max_length=500)


class EscrowReleaseResponse(BaseModel):
    released: int
    amount_inr: float
