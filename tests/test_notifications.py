"""
Notification Inbox Tests
"""
import uuid

import pytest

from conftest import auth_headers
from notevault.modules.notifications.models import NotificationType
from notevault.modules.notifications.service import NotificationService


@pytest.fixture
async def inbox(db_session, buyer):
    service = NotificationService(db_session)
    created = []
    for i in range(3):
        created.append(await service.notify(
            user_id=buyer.id,
            type=NotificationType.INFO,
            title=f"Notice {i}",
            message="Semester sale is live",
        ))
    await db_session.commit()
    return created


@pytest.mark.asyncio
async def test_list_and_unread_count(client, buyer, inbox):
    response = await client.get("/api/v1/notifications", headers=auth_headers(buyer))
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert data["unread_count"] == 3
    assert len(data["items"]) == 3

    count = await client.get("/api/v1/notifications/unread-count", headers=auth_headers(buyer))
    assert count.json() == {"unread_count": 3}


@pytest.mark.asyncio
async def test_opening_marks_read(client, buyer, inbox):
    target = inbox[0]
    response = await client.get(f"/api/v1/notifications/{target.id}", headers=auth_headers(buyer))
    assert response.status_code == 200
    assert response.json()["is_read"] is True
    assert response.json()["read_at"] is not None

    count = await client.get("/api/v1/notifications/unread-count", headers=auth_headers(buyer))
    assert count.json()["unread_count"] == 2


@pytest.mark.asyncio
async def test_mark_all_read_and_clear(client, buyer, inbox):
    marked = await client.patch("/api/v1/notifications/read-all", headers=auth_headers(buyer))
    assert marked.json() == {"updated": 3}

    again = await client.patch("/api/v1/notifications/read-all", headers=auth_headers(buyer))
    assert again.json() == {"updated": 0}

    cleared = await client.delete("/api/v1/notifications", headers=auth_headers(buyer))
    assert cleared.json() == {"updated": 3}

    listing = await client.get("/api/v1/notifications", headers=auth_headers(buyer))
    assert listing.json()["total"] == 0


@pytest.mark.asyncio
async def test_cannot_read_someone_elses_notification(client, seller, inbox):
    response = await client.patch(f"/api/v1/notifications/{inbox[0].id}/read", headers=auth_headers(seller))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_unknown_notification(client, buyer):
    response = await client.get(f"/api/v1/notifications/{uuid.uuid4()}", headers=auth_headers(buyer))
    assert response.status_code == 404
