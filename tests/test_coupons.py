"""
Coupon Tests - admin management, checkout discounts and usage limits.
"""
from datetime import timedelta

import pytest
from sqlalchemy import select

from conftest import auth_headers, make_note
from notevault.core.models import utc_now
from notevault.modules.coupons.models import Coupon, CouponUsage
from notevault.modules.coupons.service import coupon_discount
from notevault.modules.payments.models import PaymentOrder, Transaction


async def _make_coupon(db_session, code: str = "EXAM10", **kwargs) -> Coupon:
    fields = dict(
        code=code,
        type="PERCENTAGE",
        value=10,
        scope="GLOBAL",
        scope_ids=[],
        start_date=utc_now() - timedelta(days=1),
        usage_count=0,
        is_active=True,
    )
    fields.update(kwargs)
    coupon = Coupon(**fields)
    db_session.add(coupon)
    await db_session.commit()
    return coupon


async def _checkout(client, buyer, note, coupon_code=None):
    body = {"note_ids": [str(note.id)]}
    if coupon_code:
        body["coupon_code"] = coupon_code
    return await client.post("/api/v1/payments/create-order", json=body, headers=auth_headers(buyer))


async def _pay(client, buyer, order_id):
    return await client.post(
        "/api/v1/payments/verify",
        json={
            "razorpay_order_id": order_id,
            "razorpay_payment_id": "pay_mock_1",
            "razorpay_signature": "mock-signature",
        },
        headers=auth_headers(buyer),
    )


class TestCouponDiscount:
    def test_flat_never_exceeds_order(self):
        assert coupon_discount(Coupon(type="FLAT", value=50), 200) == 50
        assert coupon_discount(Coupon(type="FLAT", value=500), 200) == 200

    def test_percentage_respects_cap(self):
        assert coupon_discount(Coupon(type="PERCENTAGE", value=15, max_discount_amount=None), 200) == 30
        assert coupon_discount(Coupon(type="PERCENTAGE", value=50, max_discount_amount=40), 200) == 40


# ============== Admin ==============

@pytest.mark.asyncio
async def test_admin_creates_coupon(client, admin):
    response = await client.post(
        "/api/v1/coupons",
        json={"code": "welcome-10", "type": "PERCENTAGE", "value": 10, "usage_limit_per_user": 1},
        headers=auth_headers(admin),
    )
    assert response.status_code == 201
    data = response.json()
    assert data["code"] == "WELCOME-10"
    assert data["scope"] == "GLOBAL"
    assert data["usage_count"] == 0

    listed = await client.get("/api/v1/coupons", headers=auth_headers(admin))
    assert [c["code"] for c in listed.json()] == ["WELCOME-10"]


@pytest.mark.asyncio
async def test_coupon_rules_are_validated(client, admin):
    too_much = await client.post(
        "/api/v1/coupons",
        json={"code": "HALFOFF", "type": "PERCENTAGE", "value": 150},
        headers=auth_headers(admin),
    )
    assert too_much.status_code == 422
    assert too_much.json()["error"]["code"] == "VALIDATION_ERROR"

    backwards = await client.post(
        "/api/v1/coupons",
        json={
            "code": "BACKWARDS",
            "type": "FLAT",
            "value": 20,
            "start_date": (utc_now() + timedelta(days=5)).isoformat(),
            "end_date": (utc_now() + timedelta(days=2)).isoformat(),
        },
        headers=auth_headers(admin),
    )
    assert backwards.status_code == 422
    assert backwards.json()["error"]["details"]["field"] == "end_date"


@pytest.mark.asyncio
async def test_scoped_coupon_needs_known_ids(client, admin, category):
    missing = await client.post(
        "/api/v1/coupons",
        json={"code": "CSONLY", "type": "FLAT", "value": 20, "scope": "CATEGORY"},
        headers=auth_headers(admin),
    )
    assert missing.status_code == 422

    ok = await client.post(
        "/api/v1/coupons",
        json={"code": "CSONLY", "type": "FLAT", "value": 20, "scope": "CATEGORY", "scope_ids": [str(category.id)]},
        headers=auth_headers(admin),
    )
    assert ok.status_code == 201
    assert ok.json()["scope_ids"] == [str(category.id)]


@pytest.mark.asyncio
async def test_duplicate_code_conflicts(client, db_session, admin):
    await _make_coupon(db_session, code="EXAM10")
    response = await client.post(
        "/api/v1/coupons",
        json={"code": "exam10", "type": "FLAT", "value": 20},
        headers=auth_headers(admin),
    )
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "COUPON_EXISTS"


@pytest.mark.asyncio
async def test_only_admins_manage_coupons(client, seller):
    response = await client.post(
        "/api/v1/coupons",
        json={"code": "SNEAKY", "type": "FLAT", "value": 20},
        headers=auth_headers(seller),
    )
    assert response.status_code == 403


# ============== Checkout ==============

@pytest.mark.asyncio
async def test_checkout_applies_coupon_and_tracks_usage(client, db_session, buyer, seller, note, session_maker):
    coupon = await _make_coupon(db_session, code="EXAM10", value=10)

    order = await _checkout(client, buyer, note, coupon_code="exam10")
    assert order.status_code == 200
    data = order.json()
    assert data["coupon_code"] == "EXAM10"
    assert data["coupon_discount"] == 10
    assert data["amount"] == 90

    async with session_maker() as session:
        transaction = (await session.execute(select(Transaction))).scalar_one()
        assert transaction.coupon_discount_inr == 10
        assert transaction.final_amount_inr == 90
        assert transaction.commission_inr == 18
        assert transaction.seller_earning_inr == 72
        # Not counted until paid
        assert (await session.get(Coupon, coupon.id)).usage_count == 0

    paid = await _pay(client, buyer, data["order_id"])
    assert paid.status_code == 200

    async with session_maker() as session:
        assert (await session.get(Coupon, coupon.id)).usage_count == 1
        usage = (await session.execute(select(CouponUsage))).scalar_one()
        assert usage.user_id == buyer.id
        assert usage.discount_amount_inr == 10


@pytest.mark.asyncio
async def test_unknown_coupon_rejected(client, buyer, note):
    response = await _checkout(client, buyer, note, coupon_code="NOPE1234")
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_COUPON"


@pytest.mark.asyncio
async def test_expired_and_inactive_coupons_rejected(client, db_session, buyer, note):
    await _make_coupon(db_session, code="OLDCODE", end_date=utc_now() - timedelta(hours=1))
    await _make_coupon(db_session, code="OFFCODE", is_active=False)

    expired = await _checkout(client, buyer, note, coupon_code="OLDCODE")
    assert expired.status_code == 400
    assert expired.json()["error"]["message"] == "Coupon has expired"

    inactive = await _checkout(client, buyer, note, coupon_code="OFFCODE")
    assert inactive.json()["error"]["message"] == "Coupon is inactive"


@pytest.mark.asyncio
async def test_minimum_order_value_enforced(client, db_session, buyer, note):
    await _make_coupon(db_session, code="BIGCART", min_order_value=500)
    response = await _checkout(client, buyer, note, coupon_code="BIGCART")
    assert response.status_code == 400
    assert "Minimum order value" in response.json()["error"]["message"]


@pytest.mark.asyncio
async def test_seller_scoped_coupon_needs_matching_note(client, db_session, buyer, seller, note):
    other_seller_coupon = await _make_coupon(
        db_session, code="OTHERSEL", scope="SELLER", scope_ids=[str(buyer.id)]
    )
    response = await _checkout(client, buyer, note, coupon_code=other_seller_coupon.code)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Coupon not applicable to these items"

    await _make_coupon(db_session, code="RAHUL10", scope="SELLER", scope_ids=[str(seller.id)])
    ok = await _checkout(client, buyer, note, coupon_code="RAHUL10")
    assert ok.status_code == 200


@pytest.mark.asyncio
async def test_per_user_limit(client, db_session, buyer, seller, note):
    await _make_coupon(db_session, code="ONCEONLY", usage_limit_per_user=1)
    first = await _checkout(client, buyer, note, coupon_code="ONCEONLY")
    await _pay(client, buyer, first.json()["order_id"])

    second_note = await make_note(db_session, seller, title="Operating Systems Notes")
    again = await _checkout(client, buyer, second_note, coupon_code="ONCEONLY")
    assert again.status_code == 400
    assert again.json()["error"]["message"] == "You have already used this coupon"


@pytest.mark.asyncio
async def test_adding_coupon_replaces_pending_checkout(client, db_session, buyer, note, session_maker):
    await _make_coupon(db_session, code="EXAM10")
    plain = await _checkout(client, buyer, note)
    discounted = await _checkout(client, buyer, note, coupon_code="EXAM10")

    assert discounted.status_code == 200
    assert discounted.json()["is_idempotent"] is False
    assert discounted.json()["payment_order_id"] == plain.json()["payment_order_id"]
    assert discounted.json()["order_id"] != plain.json()["order_id"]

    repeat = await _checkout(client, buyer, note, coupon_code="EXAM10")
    assert repeat.json()["is_idempotent"] is True

    async with session_maker() as session:
        order = (await session.execute(select(PaymentOrder))).scalar_one()
        assert order.coupon_code == "EXAM10"
        statuses = dict((await session.execute(
            select(Transaction.gateway_order_id, Transaction.status)
        )).all())
        assert statuses[plain.json()["order_id"]] == "FAILED"
        assert statuses[discounted.json()["order_id"]] == "PENDING"

    stale = await _pay(client, buyer, plain.json()["order_id"])
    assert stale.status_code == 400
    assert stale.json()["error"]["code"] == "ORDER_SUPERSEDED"
