"""
Notes Tests - commission tiers, catalog, listings and purchase-gated downloads.
"""
import uuid

import pytest
from sqlalchemy import select

from conftest import auth_headers, make_note, make_user
from notevault.core.security import sanitize_text
from notevault.modules.notes.models import Note
from notevault.modules.notes.service import NoteService, calculate_commission
from notevault.modules.payments.models import Purchase


class TestCommission:
    def test_short_notes_pay_fifteen_percent(self):
        assert calculate_commission(100, 40) == (15.0, 15.0, 85.0)

    def test_boundary_at_fifty_pages(self):
        assert calculate_commission(100, 50)[0] == 15.0
        assert calculate_commission(100, 51)[0] == 12.0

    def test_long_notes(self):
        assert calculate_commission(200, 150) == (12.0, 24.0, 176.0)
        assert calculate_commission(200, 151) == (10.0, 20.0, 180.0)

    def test_rounds_to_paise(self):
        _, commission, earning = calculate_commission(99.99, 10)
        assert commission == 15.0
        assert earning == 84.99


class TestSanitizeText:
    def test_strips_tags(self):
        assert sanitize_text("<b>Unit 2</b> Graphs") == "Unit 2 Graphs"

    def test_encoded_tags_are_not_decoded(self):
        cleaned = sanitize_text("&lt;script&gt;alert(1)&lt;/script&gt;")
        assert "<script>" not in cleaned
        assert "<" not in cleaned

    def test_none_passes_through(self):
        assert sanitize_text(None) is None


# ============== Catalog ==============

@pytest.mark.asyncio
async def test_catalog_hides_unlisted_notes(client, db_session, seller, note):
    await make_note(db_session, seller, title="Hidden Draft", is_active=False)
    await make_note(db_session, seller, title="Pending Review", is_approved=False)
    await make_note(db_session, seller, title="Removed", is_deleted=True)

    response = await client.get("/api/v1/notes")
    assert response.status_code == 200
    data = response.json()
    assert [item["id"] for item in data["items"]] == [str(note.id)]
    assert data["pagination"] == {"total": 1, "page": 1, "limit": 20, "total_pages": 1}


@pytest.mark.asyncio
async def test_catalog_filters_and_search(client, db_session, seller, note):
    await make_note(db_session, seller, title="Organic Chemistry", subject="Chemistry", degree="BSc", semester=1)

    by_degree = await client.get("/api/v1/notes", params={"degree": "BSc"})
    assert [i["title"] for i in by_degree.json()["items"]] == ["Organic Chemistry"]

    by_semester = await client.get("/api/v1/notes", params={"semester": 3})
    assert [i["id"] for i in by_semester.json()["items"]] == [str(note.id)]

    by_university = await client.get("/api/v1/notes", params={"university_id": str(note.university_id)})
    assert by_university.json()["pagination"]["total"] == 1

    search = await client.get("/api/v1/notes", params={"search": "chemis"})
    assert [i["title"] for i in search.json()["items"]] == ["Organic Chemistry"]


@pytest.mark.asyncio
async def test_catalog_sorting_by_price(client, db_session, seller):
    await make_note(db_session, seller, title="Cheap Notes", price_inr=20)
    await make_note(db_session, seller, title="Premium Notes", price_inr=500)
    await make_note(db_session, seller, title="Midrange Notes", price_inr=150)

    response = await client.get("/api/v1/notes", params={"sort": "price_low"})
    assert [i["price_inr"] for i in response.json()["items"]] == [20, 150, 500]

    response = await client.get("/api/v1/notes", params={"sort": "price_high", "limit": 1})
    data = response.json()
    assert [i["title"] for i in data["items"]] == ["Premium Notes"]
    assert data["pagination"]["total_pages"] == 3


@pytest.mark.asyncio
async def test_note_detail_hides_file_for_anonymous(client, note, session_maker):
    response = await client.get(f"/api/v1/notes/{note.id}")
    assert response.status_code == 200
    data = response.json()
    assert data["file_url"] is None
    assert data["is_purchased"] is False
    assert data["seller"]["full_name"] == "Rahul Sharma"

    async with session_maker() as session:
        stored = await session.get(Note, note.id)
        assert stored.view_count == 1


@pytest.mark.asyncio
async def test_concurrent_views_are_all_counted(note, session_maker):
    async with session_maker() as first, session_maker() as second:
        # Both sessions hold the note with view_count 0
        await first.get(Note, note.id)
        await second.get(Note, note.id)

        await NoteService(second).get_note_detail(note.id, None)
        detail = await NoteService(first).get_note_detail(note.id, None)
        assert detail["view_count"] == 2

    async with session_maker() as session:
        stored = await session.get(Note, note.id)
        assert stored.view_count == 2


@pytest.mark.asyncio
async def test_note_detail_reveals_file_to_purchaser(client, db_session, buyer, note):
    db_session.add(Purchase(user_id=buyer.id, note_id=note.id))
    await db_session.commit()

    response = await client.get(f"/api/v1/notes/{note.id}", headers=auth_headers(buyer))
    data = response.json()
    assert data["is_purchased"] is True
    assert data["file_url"] == note.file_url


@pytest.mark.asyncio
async def test_note_detail_for_owner(client, seller, note):
    response = await client.get(f"/api/v1/notes/{note.id}", headers=auth_headers(seller))
    data = response.json()
    assert data["is_owner"] is True
    assert data["file_url"] == note.file_url


# ============== Seller Listings ==============

@pytest.mark.asyncio
async def test_create_note_sanitizes_and_prices(client, seller, university, session_maker):
    payload = {
        "title": "<b>Operating Systems</b> Unit 1",
        "description": "<script>alert(1)</script>Scheduling & memory",
        "subject": "Operating Systems",
        "degree": "BTech",
        "semester": 4,
        "total_pages": 80,
        "price_inr": 150,
        "file_url": f"notes/{seller.id}/os.pdf",
        "tags": ["<i>os</i>", "exam"],
    }
    response = await client.post("/api/v1/notes", json=payload, headers=auth_headers(seller))
    assert response.status_code == 201
    note_id = uuid.UUID(response.json()["id"])

    async with session_maker() as session:
        note = await session.get(Note, note_id)
        assert note.title == "Operating Systems Unit 1"
        assert "<script>" not in note.description
        assert note.description.endswith("Scheduling &amp; memory")
        assert note.tags == ["os", "exam"]
        assert note.university_id == university.id
        assert note.commission_percentage == 12.0
        assert note.seller_earning_inr == 132.0


@pytest.mark.asyncio
async def test_entity_encoded_markup_stays_escaped(client, seller, university, session_maker):
    payload = {
        "title": "&lt;img src=x onerror=alert(1)&gt;Notes",
        "description": "&lt;script&gt;alert(1)&lt;/script&gt;",
        "subject": "Networks",
        "total_pages": 20,
        "price_inr": 60,
        "file_url": f"notes/{seller.id}/cn.pdf",
    }
    response = await client.post("/api/v1/notes", json=payload, headers=auth_headers(seller))
    assert response.status_code == 201

    async with session_maker() as session:
        note = await session.get(Note, uuid.UUID(response.json()["id"]))
        assert "<img" not in note.title
        assert note.title == "&lt;img src=x onerror=alert(1)&gt;Notes"
        assert "<script" not in note.description


@pytest.mark.asyncio
async def test_buyer_cannot_create_note(client, buyer):
    payload = {
        "title": "Physics Notes",
        "subject": "Physics",
        "total_pages": 10,
        "price_inr": 50,
        "file_url": "notes/x/physics.pdf",
    }
    response = await client.post("/api/v1/notes", json=payload, headers=auth_headers(buyer))
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "SELLER_REQUIRED"


@pytest.mark.asyncio
async def test_update_recomputes_commission(client, seller, note):
    response = await client.patch(
        f"/api/v1/notes/{note.id}",
        json={"price_inr": 200},
        headers=auth_headers(seller),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["price_inr"] == 200
    assert data["commission_amount_inr"] == 30.0
    assert data["seller_earning_inr"] == 170.0


@pytest.mark.asyncio
async def test_only_owner_can_update(client, db_session, note):
    other = await make_user(db_session, "other.seller@notevault.app", is_seller=True)
    response = await client.patch(
        f"/api/v1/notes/{note.id}",
        json={"title": "Hijacked title"},
        headers=auth_headers(other),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_soft_delete_hides_from_catalog(client, seller, note, session_maker):
    response = await client.delete(f"/api/v1/notes/{note.id}", headers=auth_headers(seller))
    assert response.status_code == 200

    detail = await client.get(f"/api/v1/notes/{note.id}")
    assert detail.status_code == 404

    my_notes = await client.get("/api/v1/notes/my-notes", headers=auth_headers(seller))
    assert my_notes.json() == []

    async with session_maker() as session:
        stored = await session.get(Note, note.id)
        assert stored is not None
        assert stored.is_deleted is True


@pytest.mark.asyncio
async def test_upload_rejects_non_document(client, seller, storage):
    response = await client.post(
        "/api/v1/notes/upload",
        files={"file": ("photo.png", b"\x89PNG", "image/png")},
        headers=auth_headers(seller),
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_FILE_TYPE"
    assert storage.uploaded == []


@pytest.mark.asyncio
async def test_upload_pdf(client, seller, storage):
    response = await client.post(
        "/api/v1/notes/upload",
        files={"file": ("unit1.pdf", b"%PDF-1.4 test", "application/pdf")},
        headers=auth_headers(seller),
    )
    assert response.status_code == 201
    data = response.json()
    assert data["file_type"] == "pdf"
    assert data["file_size_bytes"] == len(b"%PDF-1.4 test")
    assert data["file_url"] == storage.uploaded[0]
    assert data["file_url"].startswith(f"notes/{seller.id}/")


# ============== Downloads ==============

@pytest.mark.asyncio
async def test_download_requires_purchase(client, buyer, note, storage):
    response = await client.get(f"/api/v1/notes/{note.id}/download", headers=auth_headers(buyer))
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "PURCHASE_REQUIRED"


@pytest.mark.asyncio
async def test_owner_can_download(client, seller, note, storage):
    response = await client.get(f"/api/v1/notes/{note.id}/download", headers=auth_headers(seller))
    assert response.status_code == 200
    data = response.json()
    assert data["file_name"] == "Data_Structures_Notes.pdf"
    assert data["download_url"].startswith(f"https://storage.notevault.test/{note.file_url}")


@pytest.mark.asyncio
async def test_purchaser_download_counts(client, db_session, buyer, note, storage, session_maker):
    db_session.add(Purchase(user_id=buyer.id, note_id=note.id))
    await db_session.commit()

    response = await client.get(f"/api/v1/notes/{note.id}/download", headers=auth_headers(buyer))
    assert response.status_code == 200
    assert response.json()["expires_in"] > 0

    async with session_maker() as session:
        stored = await session.get(Note, note.id)
        assert stored.download_count == 1
        result = await session.execute(select(Purchase).where(Purchase.user_id == buyer.id))
        assert result.scalar_one().download_count == 1


@pytest.mark.asyncio
async def test_library_lists_purchases(client, db_session, buyer, note):
    db_session.add(Purchase(user_id=buyer.id, note_id=note.id))
    await db_session.commit()

    response = await client.get("/api/v1/notes/library", headers=auth_headers(buyer))
    assert response.status_code == 200
    items = response.json()
    assert len(items) == 1
    assert items[0]["note"]["id"] == str(note.id)
