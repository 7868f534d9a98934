"""
Seller Wallet Endpoints

- GET  /api/v1/wallet                          - My wallet (seller)
- POST /api/v1/wallet/withdraw                 - Request a payout from the available balance
- GET  /api/v1/wallet/payouts                  - My payout requests (seller)
- GET  /api/v1/wallet/payouts/pending          - Payouts awaiting settlement (admin)
- POST /api/v1/wallet/payouts/{id}/complete    - Mark a payout as paid (admin)
- POST /api/v1/wallet/payouts/{id}/reject      - Reject a payout, refunding the balance (admin)
- POST /api/v1/wallet/release-escrow           - Run the escrow release now (admin)
"""
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from notevault.core.database import get_db
from notevault.modules.auth.dependencies import CurrentAdmin, CurrentSeller
from notevault.modules.wallet.schemas import (
    EscrowReleaseResponse,
    PayoutDecision,
    PayoutResponse,
    WalletResponse,
    WithdrawalRequest,
    WithdrawalResponse,
)
from notevault.modules.wallet.service import WalletService

router = APIRouter(prefix="/wallet", tags=["Wallet"])


async def get_wallet_service(db: Annotated[AsyncSession, Depends(get_db)]) -> WalletService:
    return WalletService(db)


WalletServiceDep = Annotated[WalletService, Depends(get_wallet_service)]


@router.get("", response_model=WalletResponse, summary="My Wallet")
async def get_my_wallet(current_user: CurrentSeller, service: WalletServiceDep) -> WalletResponse:
    """Sale earnings stay pending for 24 hours before becoming available."""
    wallet = await service.get_my_wallet(current_user.id)
    return WalletResponse.model_validate(wallet)


@router.post("/withdraw", response_model=WithdrawalResponse, summary="Withdraw")
async def withdraw(
    payload: WithdrawalRequest,
    current_user: CurrentSeller,
    service: WalletServiceDep,
) -> WithdrawalResponse:
    bank_details = payload.bank_details.model_dump() if payload.bank_details else None
    wallet, payout = await service.request_withdrawal(current_user.id, payload.amount_inr, bank_details)
    return WithdrawalResponse(
        **WalletResponse.model_validate(wallet).model_dump(),
        payout=PayoutResponse.model_validate(payout),
    )


@router.get("/payouts", response_model=list[PayoutResponse], summary="My Payouts")
async def list_payouts(current_user: CurrentSeller, service: WalletServiceDep) -> list[PayoutResponse]:
    payouts = await service.list_payouts(current_user.id)
    return [PayoutResponse.model_validate(p) for p in payouts]


@router.get("/payouts/pending", response_model=list[PayoutResponse], summary="Pending Payouts")
async def list_pending_payouts(current_user: CurrentAdmin, service: WalletServiceDep) -> list[PayoutResponse]:
    payouts = await service.list_pending_payouts()
    return [PayoutResponse.model_validate(p) for p in payouts]


@router.post("/payouts/{payout_id}/complete", response_model=PayoutResponse, summary="Complete Payout")
async def complete_payout(
    payout_id: uuid.UUID,
    payload: PayoutDecision,
    current_user: CurrentAdmin,
    service: WalletServiceDep,
) -> PayoutResponse:
    payout = await service.complete_payout(payout_id, payload.notes)
    return PayoutResponse.model_validate(payout)


@router.post("/payouts/{payout_id}/reject", response_model=PayoutResponse, summary="Reject Payout")
async def reject_payout(
    payout_id: uuid.UUID,
    payload: PayoutDecision,
    current_user: CurrentAdmin,
    service: WalletServiceDep,
) -> PayoutResponse:
    payout = await service.reject_payout(payout_id, payload.notes)
    return PayoutResponse.model_validate(payout)


@router.post("/release-escrow", response_model=EscrowReleaseResponse, summary="Release Escrow")
async def release_escrow(current_user: CurrentAdmin, service: WalletServiceDep) -> EscrowReleaseResponse:
    released, amount = await service.release_escrow()
    return EscrowReleaseResponse(released=released, amount_inr=amount)
