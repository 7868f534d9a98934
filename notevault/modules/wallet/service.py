"""
Wallet Module - Business Logic Service

Balances are changed with single ``UPDATE ... SET col = col + delta``
statements, guarded by a WHERE clause where a balance must not go below zero,
so concurrent sales, releases and withdrawals never overwrite each other.
"""
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from notevault.core.config import settings
from notevault.core.exceptions import BadRequestError, NotFoundError
from notevault.core.logging import get_logger
from notevault.core.models import utc_now
from notevault.modules.notifications.models import NotificationType
from notevault.modules.notifications.service import NotificationService
from notevault.modules.payments.models import Transaction, TransactionStatus
from notevault.modules.wallet.models import PayoutRequest, PayoutStatus, SellerWallet

logger = get_logger(__name__)


class WalletService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_or_create(self, seller_id: uuid.UUID) -> SellerWallet:
        result = await self.db.execute(select(SellerWallet).where(SellerWallet.seller_id == seller_id))
        wallet = result.scalar_one_or_none()
        if wallet is None:
            wallet = SellerWallet(
                seller_id=seller_id,
                available_balance_inr=0,
                pending_balance_inr=0,
                total_earned_inr=0,
                total_withdrawn_inr=0,
                minimum_withdrawal_amount=settings.minimum_withdrawal_inr,
            )
            self.db.add(wallet)
            await self.db.flush()
        return wallet

    async def _adjust(self, seller_id: uuid.UUID, *conditions: Any, **deltas: float) -> bool:
        """
        Add ``deltas`` to the wallet's balance columns in one statement.

        Returns False when ``conditions`` did not match (nothing changed).
        In-memory wallets are stale afterwards; refresh before reading them.
        """
        values = {
            name: getattr(SellerWallet, name) + round(delta, 2)
            for name, delta in deltas.items()
        }
        result = await self.db.execute(
            update(SellerWallet)
            .where(SellerWallet.seller_id == seller_id, *conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def credit_sale(self, seller_id: uuid.UUID, amount: float) -> None:
        """Add a sale's earning to the pending (escrowed) balance."""
        await self.get_or_create(seller_id)
        await self._adjust(seller_id, pending_balance_inr=amount, total_earned_inr=amount)

    async def debit_refund(self, seller_id: uuid.UUID, amount: float, escrow_released: bool) -> None:
        """
        Take a refunded sale's earning back from the seller.

        Unreleased earnings leave the pending balance. Released ones leave the
        available balance, which may go negative and is then settled from
        future releases.
        """
        await self.get_or_create(seller_id)
        if escrow_released:
            await self._adjust(seller_id, available_balance_inr=-amount, total_earned_inr=-amount)
        else:
            await self._adjust(seller_id, pending_balance_inr=-amount, total_earned_inr=-amount)

    async def get_my_wallet(self, seller_id: uuid.UUID) -> SellerWallet:
        wallet = await self.get_or_create(seller_id)
        await self.db.commit()
        return wallet

    async def release_escrow(self, now: datetime | None = None) -> tuple[int, float]:
        """
        Move matured earnings from pending to available balance.

        Each transaction is claimed with a conditional UPDATE first, so two
        workers running at once release it only once.

        Returns (released transaction count, released amount).
        """
        now = now or utc_now()
        result = await self.db.execute(
            select(Transaction.id, Transaction.seller_id, Transaction.seller_earning_inr).where(
                Transaction.status == TransactionStatus.SUCCESS.value,
                Transaction.escrow_released.is_(False),
                Transaction.escrow_release_at.is_not(None),
                Transaction.escrow_release_at <= now,
            )
        )
        due = result.all()

        released = 0
        released_amount = 0.0
        for transaction_id, seller_id, amount in due:
            claimed = await self.db.execute(
                update(Transaction)
                .where(
                    Transaction.id == transaction_id,
                    Transaction.status == TransactionStatus.SUCCESS.value,
                    Transaction.escrow_released.is_(False),
                )
                .values(escrow_released=True)
            )
            if claimed.rowcount != 1:
                continue
            await self.get_or_create(seller_id)
            await self._adjust(seller_id, pending_balance_inr=-amount, available_balance_inr=amount)
            released += 1
            released_amount += amount

        await self.db.commit()

        if released:
            logger.info("Escrow released", transactions=released, amount_inr=round(released_amount, 2))
        return released, round(released_amount, 2)

    # ============== Payouts ==============

    async def request_withdrawal(
        self,
        seller_id: uuid.UUID,
        amount: float,
        bank_details: dict | None = None,
    ) -> tuple[SellerWallet, PayoutRequest]:
        """Move ``amount`` from the available balance into a PENDING payout request."""
        wallet = await self.get_or_create(seller_id)

        if not wallet.is_active:
            raise BadRequestError("Wallet is disabled", code="WALLET_DISABLED")
        if amount < wallet.minimum_withdrawal_amount:
            raise BadRequestError(
                f"Minimum withdrawal is ₹{wallet.minimum_withdrawal_amount:.0f}",
                code="BELOW_MINIMUM_WITHDRAWAL",
            )

        debited = await self._adjust(
            seller_id,
            SellerWallet.is_active.is_(True),
            SellerWallet.available_balance_inr >= amount,
            available_balance_inr=-amount,
            total_withdrawn_inr=amount,
        )
        if not debited:
            await self.db.refresh(wallet)
            raise BadRequestError(
                "Insufficient available balance",
                code="INSUFFICIENT_BALANCE",
                details={"available_balance_inr": wallet.available_balance_inr},
            )

        payout = PayoutRequest(
            seller_id=seller_id,
            amount_inr=round(amount, 2),
            bank_details=bank_details,
            status=PayoutStatus.PENDING.value,
        )
        self.db.add(payout)
        await self.db.commit()
        await self.db.refresh(wallet)

        logger.info(
            "Withdrawal requested",
            seller_id=str(seller_id),
            payout_id=str(payout.id),
            amount_inr=amount,
        )
        return wallet, payout

    async def list_payouts(self, seller_id: uuid.UUID) -> list[PayoutRequest]:
        result = await self.db.execute(
            select(PayoutRequest)
            .where(PayoutRequest.seller_id == seller_id)
            .order_by(PayoutRequest.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_pending_payouts(self) -> list[PayoutRequest]:
        result = await self.db.execute(
            select(PayoutRequest)
            .where(PayoutRequest.status == PayoutStatus.PENDING.value)
            .order_by(PayoutRequest.created_at)
        )
        return list(result.scalars().all())

    async def _settle_payout(self, payout_id: uuid.UUID, status: PayoutStatus, notes: str | None) -> PayoutRequest:
        payout = await self.db.get(PayoutRequest, payout_id)
        if payout is None:
            raise NotFoundError("Payout request", payout_id, code="PAYOUT_NOT_FOUND")

        claimed = await self.db.execute(
            update(PayoutRequest)
            .where(PayoutRequest.id == payout_id, PayoutRequest.status == PayoutStatus.PENDING.value)
            .values(status=status.value, admin_notes=notes, processed_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            raise BadRequestError("Payout request already processed", code="PAYOUT_ALREADY_PROCESSED")
        return payout

    async def complete_payout(self, payout_id: uuid.UUID, notes: str | None = None) -> PayoutRequest:
        """Mark a payout as transferred to the seller's bank account."""
        payout = await self._settle_payout(payout_id, PayoutStatus.PAID, notes)
        await NotificationService(self.db).notify(
            user_id=payout.seller_id,
            type=NotificationType.PAYOUT,
            title="Payout sent",
            message=f"₹{payout.amount_inr:.2f} has been transferred to your bank account.",
        )
        await self.db.commit()
        await self.db.refresh(payout)

        logger.info("Payout completed", payout_id=str(payout.id), amount_inr=payout.amount_inr)
        return payout

    async def reject_payout(self, payout_id: uuid.UUID, notes: str | None = None) -> PayoutRequest:
        """Reject a payout and return its amount to the available balance."""
        payout = await self._settle_payout(payout_id, PayoutStatus.REJECTED, notes)
        await self._adjust(
            payout.seller_id,
            available_balance_inr=payout.amount_inr,
            total_withdrawn_inr=-payout.amount_inr,
        )
        await NotificationService(self.db).notify(
            user_id=payout.seller_id,
            type=NotificationType.PAYOUT,
            title="Payout rejected",
            message=f"₹{payout.amount_inr:.2f} was returned to your available balance. {notes or ''}".strip(),
        )
        await self.db.commit()
        await self.db.refresh(payout)

        logger.info("Payout rejected", payout_id=str(payout.id), amount_inr=payout.amount_inr)
        return payout
