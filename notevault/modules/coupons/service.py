"""
Coupons Module - Business Logic Service

A coupon is checked against the cart total after the bulk discount. FLAT
coupons take a fixed rupee amount off; PERCENTAGE coupons take a share,
optionally capped by ``max_discount_amount``. Non-global coupons need at
least one cart note inside their scope (note, category or seller ids).
Usage is only recorded once the order is paid.
"""
import uuid

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from notevault.core.exceptions import BadRequestError, ConflictError, NotFoundError, ValidationError
from notevault.core.logging import get_logger
from notevault.core.models import as_utc, utc_now
from notevault.modules.auth.models import User
from notevault.modules.content.models import Category
from notevault.modules.coupons.models import Coupon, CouponScope, CouponType, CouponUsage
from notevault.modules.coupons.schemas import CouponCreate
from notevault.modules.notes.models import Note

logger = get_logger(__name__)

MAX_FLAT_DISCOUNT_INR = 10000


def _invalid(message: str) -> BadRequestError:
    return BadRequestError(message, code="INVALID_COUPON")


def coupon_discount(coupon: Coupon, order_amount: float) -> float:
    """Rupee discount of ``coupon`` on ``order_amount``, rounded to paise."""
    if coupon.type == CouponType.FLAT.value:
        discount = coupon.value
    else:
        discount = order_amount * coupon.value / 100
        if coupon.max_discount_amount:
            discount = min(discount, coupon.max_discount_amount)
    return round(min(discount, order_amount), 2)


def _in_scope(coupon: Coupon, notes: list[Note]) -> bool:
    if coupon.scope == CouponScope.GLOBAL.value:
        return True
    scope_ids = {str(i) for i in coupon.scope_ids or []}
    attribute = {
        CouponScope.NOTE.value: "id",
        CouponScope.CATEGORY.value: "category_id",
        CouponScope.SELLER.value: "seller_id",
    }[coupon.scope]
    return any(str(getattr(n, attribute)) in scope_ids for n in notes)


class CouponService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_code(self, code: str) -> Coupon | None:
        result = await self.db.execute(select(Coupon).where(Coupon.code == code.strip().upper()))
        return result.scalar_one_or_none()

    async def validate(
        self,
        user_id: uuid.UUID,
        code: str,
        order_amount: float,
        notes: list[Note],
    ) -> tuple[Coupon, float]:
        """
        Check a coupon for this buyer and cart.

        Returns (coupon, discount in rupees).

        Raises:
            BadRequestError: ``INVALID_COUPON`` with the reason as message
        """
        coupon = await self.get_by_code(code)
        if coupon is None:
            raise _invalid("Invalid coupon code")

        now = utc_now()
        if not coupon.is_active:
            raise _invalid("Coupon is inactive")
        if as_utc(coupon.start_date) > now:
            raise _invalid("Coupon is not yet active")
        if coupon.end_date and as_utc(coupon.end_date) < now:
            raise _invalid("Coupon has expired")
        if coupon.usage_limit_global is not None and coupon.usage_count >= coupon.usage_limit_global:
            raise _invalid("Coupon usage limit reached")

        if coupon.usage_limit_per_user is not None:
            used = await self.db.scalar(
                select(func.count()).select_from(CouponUsage).where(
                    CouponUsage.coupon_id == coupon.id,
                    CouponUsage.user_id == user_id,
                )
            )
            if (used or 0) >= coupon.usage_limit_per_user:
                raise _invalid("You have already used this coupon")

        if coupon.min_order_value and order_amount < coupon.min_order_value:
            raise _invalid(f"Minimum order value of ₹{coupon.min_order_value:.0f} required")

        if not _in_scope(coupon, notes):
            raise _invalid("Coupon not applicable to these items")

        return coupon, coupon_discount(coupon, order_amount)

    async def track_usage(
        self,
        coupon_id: uuid.UUID,
        user_id: uuid.UUID,
        payment_order_id: uuid.UUID,
        discount: float,
    ) -> None:
        """Count a paid order against the coupon's limits (caller commits)."""
        await self.db.execute(
            update(Coupon)
            .where(Coupon.id == coupon_id)
            .values(usage_count=Coupon.usage_count + 1)
            .execution_options(synchronize_session=False)
        )
        self.db.add(CouponUsage(
            coupon_id=coupon_id,
            user_id=user_id,
            payment_order_id=payment_order_id,
            discount_amount_inr=discount,
        ))
        await self.db.flush()

    # ============== Admin ==============

    async def _check_scope_ids(self, scope: CouponScope, scope_ids: list[uuid.UUID]) -> None:
        if scope == CouponScope.GLOBAL:
            return
        if not scope_ids:
            raise ValidationError("Scope ids are required for a scoped coupon", details={"field": "scope_ids"})

        if scope == CouponScope.CATEGORY:
            query = select(Category.id).where(Category.id.in_(scope_ids))
        elif scope == CouponScope.SELLER:
            query = select(User.id).where(User.id.in_(scope_ids), User.is_seller.is_(True))
        else:
            query = select(Note.id).where(Note.id.in_(scope_ids), Note.is_deleted.is_(False))

        found = set((await self.db.execute(query)).scalars().all())
        missing = [str(i) for i in scope_ids if i not in found]
        if missing:
            raise ValidationError(
                f"Unknown {scope.value.lower()} ids in scope",
                details={"field": "scope_ids", "invalid": missing},
            )

    async def create(self, payload: CouponCreate) -> Coupon:
        if payload.type == CouponType.PERCENTAGE and payload.value > 100:
            raise ValidationError("Percentage must be between 1 and 100", details={"field": "value"})
        if payload.type == CouponType.FLAT and payload.value > MAX_FLAT_DISCOUNT_INR:
            raise ValidationError(
                f"Flat discount cannot exceed ₹{MAX_FLAT_DISCOUNT_INR}",
                details={"field": "value"},
            )

        now = utc_now()
        start = as_utc(payload.start_date) or now
        end = as_utc(payload.end_date)
        if end and end <= start:
            raise ValidationError("End date must be after start date", details={"field": "end_date"})
        if end and end < now:
            raise ValidationError("End date cannot be in the past", details={"field": "end_date"})

        await self._check_scope_ids(payload.scope, payload.scope_ids)

        if await self.get_by_code(payload.code):
            raise ConflictError("Coupon code already exists", code="COUPON_EXISTS")

        coupon = Coupon(
            code=payload.code,
            description=payload.description,
            type=payload.type.value,
            value=payload.value,
            min_order_value=payload.min_order_value,
            max_discount_amount=payload.max_discount_amount,
            scope=payload.scope.value,
            scope_ids=[str(i) for i in payload.scope_ids],
            start_date=start,
            end_date=end,
            usage_limit_global=payload.usage_limit_global,
            usage_limit_per_user=payload.usage_limit_per_user,
            usage_count=0,
            is_active=payload.is_active,
        )
        self.db.add(coupon)
        await self.db.commit()
        await self.db.refresh(coupon)

        logger.info("Coupon created", coupon_id=str(coupon.id), code=coupon.code, type=coupon.type)
        return coupon

    async def list_coupons(self) -> list[Coupon]:
        result = await self.db.execute(select(Coupon).order_by(Coupon.created_at.desc()))
        return list(result.scalars().all())

    async def deactivate(self, coupon_id: uuid.UUID) -> Coupon:
        coupon = await self.db.get(Coupon, coupon_id)
        if coupon is None:
            raise NotFoundError("Coupon", coupon_id, code="COUPON_NOT_FOUND")
        coupon.is_active = False
        await self.db.commit()

        logger.info("Coupon deactivated", coupon_id=str(coupon.id), code=coupon.code)
        return coupon
