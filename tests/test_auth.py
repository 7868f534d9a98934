"""
Auth Tests - registration, login lockout, sessions and password reset.
"""
from datetime import timedelta

import pytest
from sqlalchemy import select

from conftest import TEST_PASSWORD, auth_headers
from notevault.core.models import utc_now
from notevault.core.security import hash_token
from notevault.modules.auth.models import User, UserSession
from notevault.modules.wallet.models import SellerWallet

REGISTER_PAYLOAD = {
    "email": "New.Student@NoteVault.app",
    "password": "SecurePass1",
    "name": "Ananya Gupta",
    "degree": "BTech",
    "current_semester": 2,
}


@pytest.mark.asyncio
async def test_register_returns_tokens_and_profile(client, university):
    payload = {**REGISTER_PAYLOAD, "university_id": str(university.id)}
    response = await client.post("/api/v1/auth/register", json=payload)

    assert response.status_code == 201
    data = response.json()
    assert data["access_token"]
    assert data["refresh_token"]
    assert data["token_type"] == "bearer"
    assert data["user"]["email"] == "new.student@notevault.app"
    assert data["user"]["role"] == "buyer"
    assert data["user"]["referral_code"].startswith("REF")


@pytest.mark.asyncio
async def test_register_rejects_duplicate_email(client):
    first = await client.post("/api/v1/auth/register", json=REGISTER_PAYLOAD)
    assert first.status_code == 201

    duplicate = {**REGISTER_PAYLOAD, "email": "new.student@notevault.app"}
    response = await client.post("/api/v1/auth/register", json=duplicate)

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "EMAIL_EXISTS"


@pytest.mark.asyncio
async def test_register_rejects_unknown_university(client):
    payload = {**REGISTER_PAYLOAD, "university_id": "00000000-0000-0000-0000-000000000001"}
    response = await client.post("/api/v1/auth/register", json=payload)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_UNIVERSITY"


@pytest.mark.asyncio
async def test_login_success(client, buyer):
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "BUYER@notevault.app", "password": TEST_PASSWORD},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["user"]["id"] == str(buyer.id)

    me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
    assert me.status_code == 200
    assert me.json()["email"] == "buyer@notevault.app"


@pytest.mark.asyncio
async def test_login_wrong_password(client, buyer):
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "buyer@notevault.app", "password": "wrong-password"},
    )
    assert response.status_code == 401
    error = response.json()["error"]
    assert error["code"] == "INVALID_CREDENTIALS"
    assert error["message"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_login_unknown_email(client):
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "nobody@notevault.app", "password": "whatever1"},
    )
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_five_failures_lock_account(client, buyer, session_maker):
    for _ in range(4):
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "buyer@notevault.app", "password": "wrong-password"},
        )
        assert response.status_code == 401

    fifth = await client.post(
        "/api/v1/auth/login",
        json={"email": "buyer@notevault.app", "password": "wrong-password"},
    )
    assert fifth.status_code == 429
    assert fifth.json()["error"]["code"] == "ACCOUNT_LOCKED"
    assert int(fifth.headers["Retry-After"]) == fifth.json()["error"]["details"]["retry_after"]

    # Correct password is refused while locked
    locked = await client.post(
        "/api/v1/auth/login",
        json={"email": "buyer@notevault.app", "password": TEST_PASSWORD},
    )
    assert locked.status_code == 429
    assert "Try again in" in locked.json()["error"]["message"]

    async with session_maker() as session:
        user = await session.get(User, buyer.id)
        assert user.failed_login_attempts == 5
        assert user.lockout_until is not None


@pytest.mark.asyncio
async def test_successful_login_resets_failure_counter(client, buyer, session_maker):
    await client.post(
        "/api/v1/auth/login",
        json={"email": "buyer@notevault.app", "password": "wrong-password"},
    )
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "buyer@notevault.app", "password": TEST_PASSWORD},
    )
    assert response.status_code == 200

    async with session_maker() as session:
        user = await session.get(User, buyer.id)
        assert user.failed_login_attempts == 0
        assert user.last_login is not None


@pytest.mark.asyncio
async def test_suspended_account_cannot_login(client, db_session, buyer):
    buyer.is_active = False
    db_session.add(buyer)
    await db_session.commit()

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "buyer@notevault.app", "password": TEST_PASSWORD},
    )
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "ACCOUNT_SUSPENDED"


@pytest.mark.asyncio
async def test_refresh_and_logout_revokes_session(client, buyer):
    login = await client.post(
        "/api/v1/auth/login",
        json={"email": "buyer@notevault.app", "password": TEST_PASSWORD},
    )
    tokens = login.json()

    refreshed = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert refreshed.status_code == 200
    assert refreshed.json()["access_token"]

    headers = {"Authorization": f"Bearer {tokens['access_token']}"}
    logout = await client.post("/api/v1/auth/logout", headers=headers)
    assert logout.status_code == 200

    after_logout = await client.get("/api/v1/auth/me", headers=headers)
    assert after_logout.status_code == 401
    assert after_logout.json()["error"]["code"] == "SESSION_REVOKED"

    refresh_again = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert refresh_again.status_code == 403
    assert refresh_again.json()["error"]["code"] == "SESSION_REVOKED"


@pytest.mark.asyncio
async def test_access_token_cannot_be_used_as_refresh_token(client, buyer):
    login = await client.post(
        "/api/v1/auth/login",
        json={"email": "buyer@notevault.app", "password": TEST_PASSWORD},
    )
    response = await client.post(
        "/api/v1/auth/refresh",
        json={"refresh_token": login.json()["access_token"]},
    )
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_forgot_password_is_silent_for_unknown_email(client):
    response = await client.post("/api/v1/auth/forgot-password", json={"email": "ghost@notevault.app"})
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_reset_password_flow(client, db_session, buyer):
    token = "reset-token-0123456789"
    buyer.reset_token_hash = hash_token(token)
    buyer.reset_token_expires_at = utc_now() + timedelta(minutes=30)
    db_session.add(buyer)
    await db_session.commit()

    response = await client.post(
        "/api/v1/auth/reset-password",
        json={"token": token, "new_password": "BrandNew123"},
    )
    assert response.status_code == 200

    login = await client.post(
        "/api/v1/auth/login",
        json={"email": "buyer@notevault.app", "password": "BrandNew123"},
    )
    assert login.status_code == 200

    reused = await client.post(
        "/api/v1/auth/reset-password",
        json={"token": token, "new_password": "Another123"},
    )
    assert reused.status_code == 400
    assert reused.json()["error"]["code"] == "INVALID_RESET_TOKEN"


@pytest.mark.asyncio
async def test_reset_password_signs_out_existing_sessions(client, db_session, buyer):
    login = await client.post(
        "/api/v1/auth/login",
        json={"email": "buyer@notevault.app", "password": TEST_PASSWORD},
    )
    tokens = login.json()
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}
    assert (await client.get("/api/v1/auth/me", headers=headers)).status_code == 200

    token = "reset-token-9876543210"
    buyer.reset_token_hash = hash_token(token)
    buyer.reset_token_expires_at = utc_now() + timedelta(minutes=30)
    db_session.add(buyer)
    await db_session.commit()

    response = await client.post(
        "/api/v1/auth/reset-password",
        json={"token": token, "new_password": "BrandNew123"},
    )
    assert response.status_code == 200

    old_access = await client.get("/api/v1/auth/me", headers=headers)
    assert old_access.status_code == 401
    assert old_access.json()["error"]["code"] == "SESSION_REVOKED"

    old_refresh = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert old_refresh.status_code == 403
    assert old_refresh.json()["error"]["code"] == "SESSION_REVOKED"


@pytest.mark.asyncio
async def test_forgot_password_stores_hashed_token(client, buyer, session_maker):
    response = await client.post("/api/v1/auth/forgot-password", json={"email": "buyer@notevault.app"})
    assert response.status_code == 200

    async with session_maker() as session:
        user = await session.get(User, buyer.id)
        assert user.reset_token_hash is not None
        assert len(user.reset_token_hash) == 64
        assert user.reset_token_expires_at is not None


@pytest.mark.asyncio
async def test_update_profile(client, buyer):
    response = await client.patch(
        "/api/v1/auth/me",
        json={"full_name": "Priya P.", "current_semester": 4},
        headers=auth_headers(buyer),
    )
    assert response.status_code == 200
    assert response.json()["full_name"] == "Priya P."
    assert response.json()["current_semester"] == 4


@pytest.mark.asyncio
async def test_become_seller_opens_wallet(client, buyer, session_maker):
    response = await client.post("/api/v1/auth/become-seller", headers=auth_headers(buyer))
    assert response.status_code == 200
    assert response.json()["role"] == "seller"

    again = await client.post("/api/v1/auth/become-seller", headers=auth_headers(buyer))
    assert again.status_code == 400
    assert again.json()["error"]["code"] == "ALREADY_SELLER"

    async with session_maker() as session:
        wallet = await session.execute(select(SellerWallet).where(SellerWallet.seller_id == buyer.id))
        assert wallet.scalar_one().available_balance_inr == 0


@pytest.mark.asyncio
async def test_login_opens_session(client, buyer, session_maker):
    await client.post(
        "/api/v1/auth/login",
        json={"email": "buyer@notevault.app", "password": TEST_PASSWORD},
        headers={"User-Agent": "pytest-agent"},
    )
    async with session_maker() as session:
        result = await session.execute(select(UserSession).where(UserSession.user_id == buyer.id))
        sessions = result.scalars().all()
        assert len(sessions) == 1
        assert sessions[0].user_agent == "pytest-agent"
        assert sessions[0].is_revoked is False
