"""
Review and Wishlist Tests
"""
import uuid

import pytest

from conftest import auth_headers, make_note, make_user
from notevault.modules.notes.models import Note
from notevault.modules.payments.models import Purchase


async def _purchase(db_session, user, note):
    db_session.add(Purchase(user_id=user.id, note_id=note.id))
    await db_session.commit()


# ============== Reviews ==============

@pytest.mark.asyncio
async def test_review_requires_purchase(client, buyer, note):
    response = await client.post(
        f"/api/v1/notes/{note.id}/reviews",
        json={"rating": 5, "comment": "Great"},
        headers=auth_headers(buyer),
    )
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "PURCHASE_REQUIRED"


@pytest.mark.asyncio
async def test_review_updates_note_rating(client, db_session, buyer, note, session_maker):
    other = await make_user(db_session, "second.buyer@notevault.app", "Karan Mehta")
    await _purchase(db_session, buyer, note)
    await _purchase(db_session, other, note)

    first = await client.post(
        f"/api/v1/notes/{note.id}/reviews",
        json={"rating": 5, "title": "<em>Excellent</em>", "comment": "Covered every unit"},
        headers=auth_headers(buyer),
    )
    assert first.status_code == 201
    assert first.json()["title"] == "Excellent"
    assert first.json()["is_verified_purchase"] is True

    second = await client.post(
        f"/api/v1/notes/{note.id}/reviews",
        json={"rating": 4},
        headers=auth_headers(other),
    )
    assert second.status_code == 201

    async with session_maker() as session:
        stored = await session.get(Note, note.id)
        assert stored.average_rating == 4.5
        assert stored.total_reviews == 2

    listing = await client.get(f"/api/v1/notes/{note.id}/reviews")
    assert listing.status_code == 200
    assert {r["rating"] for r in listing.json()} == {4, 5}


@pytest.mark.asyncio
async def test_one_review_per_buyer(client, db_session, buyer, note):
    await _purchase(db_session, buyer, note)
    body = {"rating": 3, "comment": "Okay"}

    first = await client.post(f"/api/v1/notes/{note.id}/reviews", json=body, headers=auth_headers(buyer))
    assert first.status_code == 201

    second = await client.post(f"/api/v1/notes/{note.id}/reviews", json=body, headers=auth_headers(buyer))
    assert second.status_code == 400
    assert second.json()["error"]["code"] == "ALREADY_REVIEWED"


@pytest.mark.asyncio
async def test_rating_out_of_range(client, db_session, buyer, note):
    await _purchase(db_session, buyer, note)
    response = await client.post(
        f"/api/v1/notes/{note.id}/reviews",
        json={"rating": 6},
        headers=auth_headers(buyer),
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_reviews_of_missing_note(client):
    response = await client.get(f"/api/v1/notes/{uuid.uuid4()}/reviews")
    assert response.status_code == 404


# ============== Wishlist ==============

@pytest.mark.asyncio
async def test_wishlist_toggle(client, buyer, note):
    added = await client.post(f"/api/v1/wishlist/{note.id}/toggle", headers=auth_headers(buyer))
    assert added.status_code == 200
    assert added.json() == {"note_id": str(note.id), "is_wishlisted": True}

    listing = await client.get("/api/v1/wishlist", headers=auth_headers(buyer))
    data = listing.json()
    assert data["pagination"]["total"] == 1
    assert data["items"][0]["note"]["id"] == str(note.id)

    detail = await client.get(f"/api/v1/notes/{note.id}", headers=auth_headers(buyer))
    assert detail.json()["is_wishlisted"] is True

    removed = await client.post(f"/api/v1/wishlist/{note.id}/toggle", headers=auth_headers(buyer))
    assert removed.json()["is_wishlisted"] is False

    empty = await client.get("/api/v1/wishlist", headers=auth_headers(buyer))
    assert empty.json()["items"] == []


@pytest.mark.asyncio
async def test_wishlist_unknown_note(client, buyer):
    response = await client.post(f"/api/v1/wishlist/{uuid.uuid4()}/toggle", headers=auth_headers(buyer))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_wishlist_skips_delisted_notes(client, db_session, buyer, seller, note):
    other = await make_note(db_session, seller, title="Soon Removed")
    await client.post(f"/api/v1/wishlist/{note.id}/toggle", headers=auth_headers(buyer))
    await client.post(f"/api/v1/wishlist/{other.id}/toggle", headers=auth_headers(buyer))

    await client.delete(f"/api/v1/notes/{other.id}", headers=auth_headers(seller))

    listing = await client.get("/api/v1/wishlist", headers=auth_headers(buyer))
    assert [i["note"]["id"] for i in listing.json()["items"]] == [str(note.id)]
