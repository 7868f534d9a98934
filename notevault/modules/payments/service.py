"""
Payments Module - Business Logic Service

Checkout flow:
1. create_order: validate the cart, price it (bulk discount, then an optional
   coupon), open a gateway order and one PENDING transaction per note.
   Re-checkout of a FAILED cart reuses its order row with a fresh gateway
   order; payments against the replaced gateway order are refused.
2. verify_payment: check the gateway signature and, in one database
   transaction, grant purchases, credit seller wallets and notify both sides.
"""
import hashlib
import secrets
import time
import uuid
from collections import defaultdict
from datetime import timedelta

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from notevault.core.config import settings
from notevault.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from notevault.core.logging import get_logger
from notevault.core.metrics import record_order, record_payment
from notevault.core.models import utc_now
from notevault.modules.auth.models import User
from notevault.modules.content.service import listed_notes_filter
from notevault.modules.coupons.service import CouponService
from notevault.modules.notes.models import Note
from notevault.modules.notifications.models import NotificationType
from notevault.modules.notifications.service import NotificationService
from notevault.modules.payments.gateway import PaymentGateway
from notevault.modules.payments.models import (
    OrderStatus,
    PaymentOrder,
    Purchase,
    Transaction,
    TransactionStatus,
)
from notevault.modules.payments.schemas import CreateOrderResponse, OrderNote, VerifyPaymentResponse
from notevault.modules.wallet.service import WalletService

logger = get_logger(__name__)

# (minimum items, discount rate), checked from the largest tier down
BULK_DISCOUNT_TIERS = [
    (10, 0.15),
    (5, 0.10),
    (3, 0.05),
]


def bulk_discount_rate(item_count: int) -> float:
    for minimum, rate in BULK_DISCOUNT_TIERS:
        if item_count >= minimum:
            return rate
    return 0.0


def price_cart(prices: list[float]) -> tuple[float, float, float, list[float]]:
    """
    Apply the bulk discount to a cart.

    Returns (total, discount, final, item_finals). The discount is rounded to
    whole rupees; each item's final price is its proportional share of the
    discounted total, rounded to paise.
    """
    total = round(sum(prices), 2)
    discount = float(round(total * bulk_discount_rate(len(prices))))
    final = round(total - discount, 2)
    if total > 0:
        item_finals = [round(price / total * final, 2) for price in prices]
    else:
        item_finals = [0.0 for _ in prices]
    return total, discount, final, item_finals


def allocate_discount(item_finals: list[float], discount: float) -> list[float]:
    """Split a cart-level discount across items in proportion to their price."""
    subtotal = sum(item_finals)
    if not discount or subtotal <= 0:
        return [0.0 for _ in item_finals]
    return [round(item / subtotal * discount, 2) for item in item_finals]


def split_commission(final_item_price: float) -> tuple[float, float]:
    """Platform fee (whole rupees) and seller earning for one sold item."""
    commission = float(round(final_item_price * settings.platform_commission_rate))
    return commission, round(final_item_price - commission, 2)


def idempotency_key(user_id: uuid.UUID, note_ids: list[uuid.UUID]) -> str:
    """Same buyer + same set of notes always maps to the same key."""
    raw = f"{user_id}:{','.join(sorted(str(n) for n in note_ids))}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def new_transaction_reference() -> str:
    return f"TXN_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


class PaymentService:
    def __init__(self, db: AsyncSession, gateway: PaymentGateway):
        self.db = db
        self.gateway = gateway

    # ============== Checkout ==============

    async def _get_order_by_key(self, key: str) -> PaymentOrder | None:
        result = await self.db.execute(select(PaymentOrder).where(PaymentOrder.idempotency_key == key))
        return result.scalar_one_or_none()

    async def _order_response(
        self,
        order: PaymentOrder,
        notes: list[Note] | None = None,
        is_idempotent: bool = False,
    ) -> CreateOrderResponse:
        if notes is None:
            result = await self.db.execute(
                select(Note).where(Note.id.in_([uuid.UUID(n) for n in order.note_ids]))
            )
            notes = list(result.scalars().all())
        return CreateOrderResponse(
            order_id=order.gateway_order_id,
            payment_order_id=order.id,
            amount=order.final_amount_inr,
            total_amount=order.total_amount_inr,
            discount_amount=order.discount_amount_inr,
            coupon_code=order.coupon_code,
            coupon_discount=order.coupon_discount_inr,
            key=self.gateway.public_key,
            notes=[OrderNote(id=n.id, title=n.title, price=n.price_inr) for n in notes],
            is_idempotent=is_idempotent,
        )

    async def create_order(
        self,
        buyer: User,
        note_ids: list[uuid.UUID],
        coupon_code: str | None = None,
    ) -> CreateOrderResponse:
        note_ids = list(dict.fromkeys(note_ids))
        if not note_ids:
            raise BadRequestError("No notes selected", code="NO_NOTES_SELECTED")
        coupon_code = coupon_code.strip().upper() if coupon_code else None

        key = idempotency_key(buyer.id, note_ids)
        existing = await self._get_order_by_key(key)
        if existing and existing.status == OrderStatus.PENDING.value and existing.coupon_code == coupon_code:
            logger.info("Returning existing payment order", payment_order_id=str(existing.id))
            record_order(idempotent=True)
            return await self._order_response(existing, is_idempotent=True)

        result = await self.db.execute(
            select(Note).where(Note.id.in_(note_ids), *listed_notes_filter())
        )
        notes_by_id = {n.id: n for n in result.scalars().all()}
        if len(notes_by_id) != len(note_ids):
            raise BadRequestError("Some notes are no longer available", code="NOTES_UNAVAILABLE")
        notes = [notes_by_id[n] for n in note_ids]

        purchased = await self.db.execute(
            select(Purchase.note_id).where(
                Purchase.user_id == buyer.id,
                Purchase.note_id.in_(note_ids),
                Purchase.is_active.is_(True),
            )
        )
        already_purchased = [str(n) for n in purchased.scalars().all()]
        if already_purchased:
            raise BadRequestError(
                "You already own some of these notes",
                code="ALREADY_PURCHASED",
                details={"note_ids": already_purchased},
            )

        if any(n.seller_id == buyer.id for n in notes):
            raise BadRequestError("You cannot buy your own notes", code="SELF_PURCHASE_NOT_ALLOWED")

        total, discount, after_bulk, item_finals = price_cart([n.price_inr for n in notes])

        coupon = None
        coupon_discount = 0.0
        if coupon_code:
            coupon, coupon_discount = await CouponService(self.db).validate(
                buyer.id, coupon_code, after_bulk, notes
            )
        final = round(after_bulk - coupon_discount, 2)
        item_coupons = allocate_discount(item_finals, coupon_discount)

        if final < 1:
            raise BadRequestError("Order amount must be at least ₹1", code="INVALID_AMOUNT")

        receipt = f"rcpt_{uuid.uuid4().hex[:16]}"
        gateway_order = await self.gateway.create_order(
            amount_paise=int(round(final * 100)),
            receipt=receipt,
            notes={"user_id": str(buyer.id)},
        )

        if existing:
            # Reopened orders keep their row (and key); the old attempt can no longer be paid
            await self.db.execute(
                update(Transaction)
                .where(
                    Transaction.payment_order_id == existing.id,
                    Transaction.status == TransactionStatus.PENDING.value,
                )
                .values(status=TransactionStatus.FAILED.value)
            )
        order = existing or PaymentOrder(buyer_id=buyer.id, idempotency_key=key)
        order.gateway_order_id = gateway_order["id"]
        order.total_amount_inr = total
        order.discount_amount_inr = discount
        order.coupon_discount_inr = coupon_discount
        order.coupon_id = coupon.id if coupon else None
        order.coupon_code = coupon.code if coupon else None
        order.final_amount_inr = final
        order.status = OrderStatus.PENDING.value
        order.error_message = None
        order.note_ids = [str(n.id) for n in notes]
        self.db.add(order)
        try:
            await self.db.flush()
        except IntegrityError:
            # Concurrent request for the same cart won the insert
            await self.db.rollback()
            winner = await self._get_order_by_key(key)
            if winner is None:
                raise
            record_order(idempotent=True)
            return await self._order_response(winner, is_idempotent=True)

        for note, item_final, item_coupon in zip(notes, item_finals, item_coupons):
            final_item_price = round(item_final - item_coupon, 2)
            commission, earning = split_commission(final_item_price)
            self.db.add(Transaction(
                transaction_id=new_transaction_reference(),
                buyer_id=buyer.id,
                seller_id=note.seller_id,
                note_id=note.id,
                payment_order_id=order.id,
                amount_inr=note.price_inr,
                coupon_discount_inr=item_coupon,
                commission_inr=commission,
                seller_earning_inr=earning,
                final_amount_inr=final_item_price,
                status=TransactionStatus.PENDING.value,
                gateway_order_id=order.gateway_order_id,
            ))

        await self.db.commit()
        record_order(idempotent=False)

        logger.info(
            "Payment order created",
            payment_order_id=str(order.id),
            gateway_order_id=order.gateway_order_id,
            amount_inr=final,
            coupon_code=order.coupon_code,
            note_count=len(notes),
        )
        return await self._order_response(order, notes=notes)

    # ============== Verification ==============

    async def verify_payment(
        self,
        buyer: User,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
    ) -> VerifyPaymentResponse:
        result = await self.db.execute(
            select(Transaction).where(Transaction.gateway_order_id == gateway_order_id)
        )
        transactions = list(result.scalars().all())
        if not transactions:
            raise NotFoundError("Transaction", gateway_order_id, code="TRANSACTION_NOT_FOUND")

        if any(t.buyer_id != buyer.id for t in transactions):
            logger.warning("Payment verification by non-buyer", order_id=gateway_order_id, user_id=str(buyer.id))
            raise ForbiddenError("This order does not belong to you")

        retryable = {TransactionStatus.PENDING.value, TransactionStatus.FAILED.value}
        if any(t.status not in retryable for t in transactions):
            raise BadRequestError("Payment already processed", code="ALREADY_PROCESSED")

        order_id = transactions[0].payment_order_id
        order = await self.db.get(PaymentOrder, order_id) if order_id else None
        if order and order.gateway_order_id != gateway_order_id:
            raise BadRequestError(
                "This checkout was replaced by a newer one, pay that order instead",
                code="ORDER_SUPERSEDED",
            )

        if not self.gateway.verify_signature(gateway_order_id, gateway_payment_id, signature):
            for t in transactions:
                t.status = TransactionStatus.FAILED.value
            if order:
                order.status = OrderStatus.FAILED.value
                order.error_message = "Signature verification failed"
            # Persist the failure before the error response rolls the request back
            await self.db.commit()
            record_payment("failed")
            logger.warning("Payment signature invalid", order_id=gateway_order_id, user_id=str(buyer.id))
            raise BadRequestError("Payment verification failed", code="VERIFICATION_FAILED")

        now = utc_now()
        escrow_release_at = now + timedelta(hours=settings.escrow_hold_hours)
        wallets = WalletService(self.db)
        notifications = NotificationService(self.db)
        sales_by_seller: dict[uuid.UUID, list[Transaction]] = defaultdict(list)

        note_titles = dict(
            (await self.db.execute(
                select(Note.id, Note.title).where(Note.id.in_([t.note_id for t in transactions]))
            )).all()
        )

        for t in transactions:
            t.status = TransactionStatus.SUCCESS.value
            t.gateway_payment_id = gateway_payment_id
            t.gateway_signature = signature
            t.escrow_release_at = escrow_release_at
            t.escrow_released = False

            existing = await self.db.execute(
                select(Purchase).where(Purchase.user_id == buyer.id, Purchase.note_id == t.note_id)
            )
            purchase = existing.scalar_one_or_none()
            if purchase:
                purchase.is_active = True
                purchase.transaction_id = t.id
            else:
                self.db.add(Purchase(user_id=buyer.id, note_id=t.note_id, transaction_id=t.id))

            await self.db.execute(
                update(Note)
                .where(Note.id == t.note_id)
                .values(purchase_count=Note.purchase_count + 1)
            )
            await wallets.credit_sale(t.seller_id, t.seller_earning_inr)
            sales_by_seller[t.seller_id].append(t)

        for seller_id, sales in sales_by_seller.items():
            earning = round(sum(t.seller_earning_inr for t in sales), 2)
            titles = ", ".join(f"'{note_titles.get(t.note_id, 'Note')}'" for t in sales)
            await notifications.notify(
                user_id=seller_id,
                type=NotificationType.SALE,
                title="New sale!",
                message=f"{titles} purchased. ₹{earning:.2f} added to your pending balance.",
            )

        await notifications.notify(
            user_id=buyer.id,
            type=NotificationType.PURCHASE,
            title="Purchase successful",
            message=f"{len(transactions)} note(s) added to your library.",
        )

        if order:
            order.status = OrderStatus.PAID.value
            order.error_message = None
            if order.coupon_id:
                await CouponService(self.db).track_usage(
                    order.coupon_id, buyer.id, order.id, order.coupon_discount_inr
                )

        await self.db.commit()
        record_payment("success")

        logger.info(
            "Payment verified",
            order_id=gateway_order_id,
            payment_id=gateway_payment_id,
            buyer_id=str(buyer.id),
            transactions=len(transactions),
        )
        return VerifyPaymentResponse(
            payment_order_id=order.id if order else None,
            transaction_ids=[t.transaction_id for t in transactions],
            note_ids=[t.note_id for t in transactions],
        )

    # ============== History ==============

    async def _paginate(self, filters: list, page: int, limit: int) -> tuple[list[tuple[Transaction, str]], int]:
        total = await self.db.scalar(select(func.count()).select_from(Transaction).where(*filters))
        result = await self.db.execute(
            select(Transaction, Note.title)
            .join(Note, Note.id == Transaction.note_id)
            .where(*filters)
            .order_by(Transaction.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return [(t, title) for t, title in result.all()], total or 0

    async def list_transactions(self, buyer: User, page: int = 1, limit: int = 20):
        """The buyer's transactions, newest first. Returns ([(txn, note_title)], total)."""
        return await self._paginate([Transaction.buyer_id == buyer.id], page, limit)

    async def list_sales(self, seller: User, page: int = 1, limit: int = 20):
        return await self._paginate(
            [
                Transaction.seller_id == seller.id,
                Transaction.status == TransactionStatus.SUCCESS.value,
            ],
            page,
            limit,
        )

    async def get_transaction(self, user: User, reference: str) -> tuple[Transaction, str]:
        """Look up by UUID or ``TXN_`` reference; visible to its buyer and seller only."""
        try:
            condition = Transaction.id == uuid.UUID(reference)
        except ValueError:
            condition = Transaction.transaction_id == reference

        result = await self.db.execute(
            select(Transaction, Note.title)
            .join(Note, Note.id == Transaction.note_id)
            .where(condition)
        )
        row = result.first()
        if not row or user.id not in (row[0].buyer_id, row[0].seller_id):
            raise NotFoundError("Transaction", reference, code="TRANSACTION_NOT_FOUND")
        return row[0], row[1]
