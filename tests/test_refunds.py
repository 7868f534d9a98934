"""
Refund Tests - buyer requests, admin decisions and wallet effects.
"""
import uuid
from datetime import timedelta

import httpx
import pytest
from sqlalchemy import select, update

from conftest import auth_headers, make_note
from notevault.core.models import utc_now
from notevault.main import app
from notevault.modules.notes.models import Note
from notevault.modules.notifications.models import Notification
from notevault.modules.payments.gateway import PaymentGateway, get_payment_gateway
from notevault.modules.payments.models import Purchase, Transaction
from notevault.modules.refunds.models import Refund
from notevault.modules.wallet.models import SellerWallet
from notevault.modules.wallet.service import WalletService


async def _buy(client, buyer, note) -> str:
    """Check out and pay for ``note``; returns the TXN_ reference."""
    order = await client.post(
        "/api/v1/payments/create-order",
        json={"note_ids": [str(note.id)]},
        headers=auth_headers(buyer),
    )
    paid = await client.post(
        "/api/v1/payments/verify",
        json={
            "razorpay_order_id": order.json()["order_id"],
            "razorpay_payment_id": "pay_mock_1",
            "razorpay_signature": "mock-signature",
        },
        headers=auth_headers(buyer),
    )
    return paid.json()["transaction_ids"][0]


async def _request(client, buyer, reference, reason="NOT_AS_DESCRIBED", details=None):
    return await client.post(
        "/api/v1/refunds",
        json={"transaction_id": reference, "reason": reason, "reason_details": details},
        headers=auth_headers(buyer),
    )


async def _wallet(session, seller) -> SellerWallet:
    result = await session.execute(select(SellerWallet).where(SellerWallet.seller_id == seller.id))
    return result.scalar_one()


# ============== Requests ==============

@pytest.mark.asyncio
async def test_buyer_requests_refund(client, buyer, note):
    reference = await _buy(client, buyer, note)

    response = await _request(client, buyer, reference, details="<b>Pages 12-20</b> are blank")
    assert response.status_code == 201
    data = response.json()
    assert data["refund_reference"].startswith("REF_")
    assert data["status"] == "PENDING"
    assert data["amount_inr"] == 100
    assert data["reason_details"] == "Pages 12-20 are blank"

    mine = await client.get("/api/v1/refunds", headers=auth_headers(buyer))
    assert [r["id"] for r in mine.json()] == [data["id"]]


@pytest.mark.asyncio
async def test_second_request_for_same_purchase_conflicts(client, buyer, note):
    reference = await _buy(client, buyer, note)
    await _request(client, buyer, reference)

    again = await _request(client, buyer, reference, reason="OTHER")
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "REFUND_EXISTS"


@pytest.mark.asyncio
async def test_unpaid_transaction_not_refundable(client, buyer, note, session_maker):
    await client.post(
        "/api/v1/payments/create-order",
        json={"note_ids": [str(note.id)]},
        headers=auth_headers(buyer),
    )
    async with session_maker() as session:
        reference = (await session.execute(select(Transaction.transaction_id))).scalar_one()

    response = await _request(client, buyer, reference)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "NOT_REFUNDABLE"


@pytest.mark.asyncio
async def test_only_the_buyer_can_request(client, buyer, seller, note):
    reference = await _buy(client, buyer, note)
    response = await _request(client, seller, reference)
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "TRANSACTION_NOT_FOUND"


@pytest.mark.asyncio
async def test_refund_window_closes(client, buyer, note, session_maker):
    reference = await _buy(client, buyer, note)
    async with session_maker() as session:
        await session.execute(
            update(Transaction)
            .where(Transaction.transaction_id == reference)
            .values(created_at=utc_now() - timedelta(days=31))
        )
        await session.commit()

    response = await _request(client, buyer, reference)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "REFUND_WINDOW_EXPIRED"


@pytest.mark.asyncio
async def test_too_many_refund_requests_are_rate_limited(client, db_session, buyer, seller):
    references = []
    for i in range(4):
        note = await make_note(db_session, seller, title=f"Unit {i} Notes")
        references.append(await _buy(client, buyer, note))

    for reference in references[:3]:
        assert (await _request(client, buyer, reference)).status_code == 201

    limited = await _request(client, buyer, references[3])
    assert limited.status_code == 429
    error = limited.json()["error"]
    assert error["code"] == "REFUND_LIMIT_REACHED"
    assert error["details"]["retry_after"] > 29 * 24 * 3600
    assert int(limited.headers["Retry-After"]) == error["details"]["retry_after"]


# ============== Admin ==============

@pytest.mark.asyncio
async def test_approval_refunds_and_revokes_access(client, admin, buyer, seller, note, storage, session_maker):
    reference = await _buy(client, buyer, note)
    refund_id = (await _request(client, buyer, reference)).json()["id"]

    pending = await client.get("/api/v1/refunds/pending", headers=auth_headers(admin))
    assert [r["id"] for r in pending.json()] == [refund_id]

    response = await client.post(
        f"/api/v1/refunds/{refund_id}/approve",
        json={"notes": "Blank pages confirmed"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "COMPLETED"
    assert data["gateway_refund_id"].startswith("rfnd_mock_")
    assert data["processed_at"] is not None

    async with session_maker() as session:
        transaction = (await session.execute(select(Transaction))).scalar_one()
        assert transaction.status == "REFUNDED"
        purchase = (await session.execute(select(Purchase))).scalar_one()
        assert purchase.is_active is False
        assert (await session.get(Note, note.id)).purchase_count == 0

        wallet = await _wallet(session, seller)
        assert wallet.pending_balance_inr == 0
        assert wallet.total_earned_inr == 0

        notices = (await session.execute(
            select(Notification).where(Notification.type == "REFUND")
        )).scalars().all()
        assert {n.user_id for n in notices} == {buyer.id, seller.id}

        # Refunded sales never reach the available balance
        released, _ = await WalletService(session).release_escrow(now=utc_now() + timedelta(hours=48))
        assert released == 0

    download = await client.get(f"/api/v1/notes/{note.id}/download", headers=auth_headers(buyer))
    assert download.status_code == 403


@pytest.mark.asyncio
async def test_refund_after_escrow_release_debits_available_balance(client, admin, buyer, seller, note, session_maker):
    reference = await _buy(client, buyer, note)
    async with session_maker() as session:
        await WalletService(session).release_escrow(now=utc_now() + timedelta(hours=25))

    refund_id = (await _request(client, buyer, reference)).json()["id"]
    await client.post(f"/api/v1/refunds/{refund_id}/approve", json={}, headers=auth_headers(admin))

    async with session_maker() as session:
        wallet = await _wallet(session, seller)
        assert wallet.available_balance_inr == 0
        assert wallet.pending_balance_inr == 0
        assert wallet.total_earned_inr == 0


@pytest.mark.asyncio
async def test_rejection_keeps_the_sale(client, admin, buyer, note, session_maker):
    reference = await _buy(client, buyer, note)
    refund_id = (await _request(client, buyer, reference)).json()["id"]

    response = await client.post(
        f"/api/v1/refunds/{refund_id}/reject",
        json={"notes": "Notes match the preview"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "REJECTED"
    assert response.json()["admin_notes"] == "Notes match the preview"

    again = await client.post(f"/api/v1/refunds/{refund_id}/approve", json={}, headers=auth_headers(admin))
    assert again.status_code == 400
    assert again.json()["error"]["code"] == "REFUND_ALREADY_PROCESSED"

    async with session_maker() as session:
        assert (await session.execute(select(Transaction))).scalar_one().status == "SUCCESS"
        assert (await session.execute(select(Purchase))).scalar_one().is_active is True


@pytest.mark.asyncio
async def test_gateway_error_marks_refund_failed(client, admin, buyer, note, session_maker):
    reference = await _buy(client, buyer, note)
    refund_id = (await _request(client, buyer, reference)).json()["id"]

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, json={"error": {"code": "SERVER_ERROR"}})

    failing = PaymentGateway(
        key_id="rzp_test_key",
        key_secret="gateway-secret",
        api_url="https://api.gateway.test/v1",
        transport=httpx.MockTransport(handler),
    )
    app.dependency_overrides[get_payment_gateway] = lambda: failing

    response = await client.post(f"/api/v1/refunds/{refund_id}/approve", json={}, headers=auth_headers(admin))
    assert response.status_code == 503
    assert response.json()["error"]["code"] == "REFUND_GATEWAY_ERROR"

    async with session_maker() as session:
        refund = await session.get(Refund, uuid.UUID(refund_id))
        assert refund.status == "FAILED"
        assert (await session.execute(select(Transaction))).scalar_one().status == "SUCCESS"


@pytest.mark.asyncio
async def test_buyers_cannot_decide_refunds(client, buyer, note):
    reference = await _buy(client, buyer, note)
    refund_id = (await _request(client, buyer, reference)).json()["id"]

    response = await client.post(f"/api/v1/refunds/{refund_id}/approve", json={}, headers=auth_headers(buyer))
    assert response.status_code == 403
