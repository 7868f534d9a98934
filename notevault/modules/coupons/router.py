"""
Coupon Endpoints (admin)

- POST /api/v1/coupons                     - Create a coupon
- GET  /api/v1/coupons                     - All coupons, newest first
- POST /api/v1/coupons/{id}/deactivate     - Stop a coupon from being applied

Buyers apply a coupon with ``coupon_code`` on ``POST /api/v1/payments/create-order``.
"""
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from notevault.core.database import get_db
from notevault.modules.auth.dependencies import CurrentAdmin
from notevault.modules.coupons.schemas import CouponCreate, CouponResponse
from notevault.modules.coupons.service import CouponService

router = APIRouter(prefix="/coupons", tags=["Coupons"])


async def get_coupon_service(db: Annotated[AsyncSession, Depends(get_db)]) -> CouponService:
    return CouponService(db)


CouponServiceDep = Annotated[CouponService, Depends(get_coupon_service)]


@router.post(
    "",
    response_model=CouponResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Coupon",
    description="""
- `PERCENTAGE` values are 1-100, `FLAT` values are rupees (max 10000)
- Scoped coupons (`NOTE`, `CATEGORY`, `SELLER`) need existing `scope_ids`
- Errors: `VALIDATION_ERROR` (422), `COUPON_EXISTS` (409)
    """,
)
async def create_coupon(
    payload: CouponCreate,
    current_user: CurrentAdmin,
    service: CouponServiceDep,
) -> CouponResponse:
    coupon = await service.create(payload)
    return CouponResponse.model_validate(coupon)


@router.get("", response_model=list[CouponResponse], summary="List Coupons")
async def list_coupons(current_user: CurrentAdmin, service: CouponServiceDep) -> list[CouponResponse]:
    coupons = await service.list_coupons()
    return [CouponResponse.model_validate(c) for c in coupons]


@router.post("/{coupon_id}/deactivate", response_model=CouponResponse, summary="Deactivate Coupon")
async def deactivate_coupon(
    coupon_id: uuid.UUID,
    current_user: CurrentAdmin,
    service: CouponServiceDep,
) -> CouponResponse:
    coupon = await service.deactivate(coupon_id)
    return CouponResponse.model_validate(coupon)
