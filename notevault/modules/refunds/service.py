"""
Refunds Module - Business Logic Service

A buyer may ask for a refund of a successful purchase within
``refund_window_days`` of paying, and at most ``max_refunds_per_window`` times
per window. An admin approves (gateway refund, access revoked, seller
earning taken back) or rejects the request.
"""
import secrets
import uuid
from datetime import timedelta

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from notevault.core.config import settings
from notevault.core.exceptions import (
    BadRequestError,
    ConflictError,
    NotFoundError,
    RateLimitError,
    ServiceUnavailableError,
)
from notevault.core.logging import get_logger
from notevault.core.metrics import record_refund
from notevault.core.models import as_utc, utc_now
from notevault.core.security import sanitize_text
from notevault.modules.auth.models import User
from notevault.modules.notes.models import Note
from notevault.modules.notifications.models import NotificationType
from notevault.modules.notifications.service import NotificationService
from notevault.modules.payments.gateway import PaymentGateway
from notevault.modules.payments.models import Purchase, Transaction, TransactionStatus
from notevault.modules.refunds.models import Refund, RefundStatus
from notevault.modules.refunds.schemas import RefundCreate
from notevault.modules.wallet.service import WalletService

logger = get_logger(__name__)


def new_refund_reference() -> str:
    return f"REF_{secrets.token_hex(6).upper()}"


class RefundService:
    def __init__(self, db: AsyncSession, gateway: PaymentGateway):
        self.db = db
        self.gateway = gateway

    async def _buyer_transaction(self, buyer: User, reference: str) -> Transaction:
        try:
            condition = Transaction.id == uuid.UUID(reference)
        except ValueError:
            condition = Transaction.transaction_id == reference

        result = await self.db.execute(
            select(Transaction).where(condition, Transaction.buyer_id == buyer.id)
        )
        transaction = result.scalar_one_or_none()
        if transaction is None:
            raise NotFoundError("Transaction", reference, code="TRANSACTION_NOT_FOUND")
        return transaction

    async def _check_request_limit(self, buyer: User, window: timedelta) -> None:
        now = utc_now()
        since = now - window
        count, oldest = (await self.db.execute(
            select(func.count(Refund.id), func.min(Refund.created_at)).where(
                Refund.buyer_id == buyer.id,
                Refund.created_at >= since,
            )
        )).one()
        if count < settings.max_refunds_per_window:
            return

        retry_after = max(int((as_utc(oldest) + window - now).total_seconds()), 1)
        logger.warning("Refund request limit reached", buyer_id=str(buyer.id), requests=count)
        raise RateLimitError(
            f"You can request at most {settings.max_refunds_per_window} refunds "
            f"every {settings.refund_window_days} days",
            retry_after=retry_after,
            code="REFUND_LIMIT_REACHED",
        )

    async def request_refund(self, buyer: User, payload: RefundCreate) -> Refund:
        transaction = await self._buyer_transaction(buyer, payload.transaction_id)

        if transaction.status != TransactionStatus.SUCCESS.value:
            raise BadRequestError("Only successful purchases can be refunded", code="NOT_REFUNDABLE")

        existing = await self.db.scalar(select(Refund.id).where(Refund.transaction_id == transaction.id))
        if existing:
            raise ConflictError("A refund was already requested for this purchase", code="REFUND_EXISTS")

        window = timedelta(days=settings.refund_window_days)
        if as_utc(transaction.created_at) + window < utc_now():
            raise BadRequestError(
                f"Refunds are only possible within {settings.refund_window_days} days of purchase",
                code="REFUND_WINDOW_EXPIRED",
            )

        await self._check_request_limit(buyer, window)

        refund = Refund(
            refund_reference=new_refund_reference(),
            transaction_id=transaction.id,
            buyer_id=buyer.id,
            seller_id=transaction.seller_id,
            note_id=transaction.note_id,
            amount_inr=transaction.final_amount_inr,
            reason=payload.reason.value,
            reason_details=sanitize_text(payload.reason_details),
            status=RefundStatus.PENDING.value,
        )
        self.db.add(refund)
        await self.db.commit()
        await self.db.refresh(refund)

        logger.info(
            "Refund requested",
            refund_id=str(refund.id),
            transaction_id=transaction.transaction_id,
            reason=refund.reason,
            amount_inr=refund.amount_inr,
        )
        return refund

    async def list_my_refunds(self, buyer: User) -> list[Refund]:
        result = await self.db.execute(
            select(Refund).where(Refund.buyer_id == buyer.id).order_by(Refund.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_pending(self) -> list[Refund]:
        result = await self.db.execute(
            select(Refund)
            .where(Refund.status == RefundStatus.PENDING.value)
            .order_by(Refund.created_at)
        )
        return list(result.scalars().all())

    # ============== Admin ==============

    async def _claim(self, refund_id: uuid.UUID, status: RefundStatus) -> Refund:
        """Move a PENDING refund to ``status``; only one admin action wins."""
        refund = await self.db.get(Refund, refund_id)
        if refund is None:
            raise NotFoundError("Refund", refund_id, code="REFUND_NOT_FOUND")

        claimed = await self.db.execute(
            update(Refund)
            .where(Refund.id == refund_id, Refund.status == RefundStatus.PENDING.value)
            .values(status=status.value)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            raise BadRequestError("Refund already processed", code="REFUND_ALREADY_PROCESSED")
        refund.status = status.value
        return refund

    async def approve(self, refund_id: uuid.UUID, notes: str | None = None) -> Refund:
        refund = await self._claim(refund_id, RefundStatus.PROCESSING)
        await self.db.commit()

        transaction = await self.db.get(Transaction, refund.transaction_id)
        try:
            gateway_refund = await self.gateway.refund_payment(
                transaction.gateway_payment_id,
                amount_paise=int(round(refund.amount_inr * 100)),
                notes={"refund_reference": refund.refund_reference},
            )
        except ServiceUnavailableError:
            refund.status = RefundStatus.FAILED.value
            refund.admin_notes = notes
            refund.processed_at = utc_now()
            await self.db.commit()
            record_refund("failed")
            logger.error("Refund failed at gateway", refund_id=str(refund.id))
            raise

        # SUCCESS -> REFUNDED also stops the escrow job from releasing this sale
        await self.db.execute(
            update(Transaction)
            .where(Transaction.id == transaction.id, Transaction.status == TransactionStatus.SUCCESS.value)
            .values(status=TransactionStatus.REFUNDED.value)
            .execution_options(synchronize_session=False)
        )
        await self.db.refresh(transaction)

        await self.db.execute(
            update(Purchase)
            .where(
                Purchase.user_id == refund.buyer_id,
                Purchase.note_id == refund.note_id,
                Purchase.transaction_id == transaction.id,
            )
            .values(is_active=False)
        )
        await self.db.execute(
            update(Note)
            .where(Note.id == refund.note_id, Note.purchase_count > 0)
            .values(purchase_count=Note.purchase_count - 1)
        )
        await WalletService(self.db).debit_refund(
            transaction.seller_id,
            transaction.seller_earning_inr,
            escrow_released=transaction.escrow_released,
        )

        refund.status = RefundStatus.COMPLETED.value
        refund.gateway_refund_id = gateway_refund.get("id")
        refund.admin_notes = notes
        refund.processed_at = utc_now()

        notifications = NotificationService(self.db)
        await notifications.notify(
            user_id=refund.buyer_id,
            type=NotificationType.REFUND,
            title="Refund approved",
            message=f"₹{refund.amount_inr:.2f} is on its way back to you ({refund.refund_reference}).",
        )
        await notifications.notify(
            user_id=refund.seller_id,
            type=NotificationType.REFUND,
            title="Sale refunded",
            message=f"₹{transaction.seller_earning_inr:.2f} was deducted from your wallet for refund "
                    f"{refund.refund_reference}.",
        )
        await self.db.commit()
        await self.db.refresh(refund)
        record_refund("completed")

        logger.info(
            "Refund completed",
            refund_id=str(refund.id),
            gateway_refund_id=refund.gateway_refund_id,
            amount_inr=refund.amount_inr,
            escrow_released=transaction.escrow_released,
        )
        return refund

    async def reject(self, refund_id: uuid.UUID, notes: str | None = None) -> Refund:
        refund = await self._claim(refund_id, RefundStatus.REJECTED)
        refund.admin_notes = notes
        refund.processed_at = utc_now()
        await NotificationService(self.db).notify(
            user_id=refund.buyer_id,
            type=NotificationType.REFUND,
            title="Refund rejected",
            message=f"Your refund request {refund.refund_reference} was not approved. {notes or ''}".strip(),
        )
        await self.db.commit()
        await self.db.refresh(refund)
        record_refund("rejected")

        logger.info("Refund rejected", refund_id=str(refund.id))
        return refund
