"""
Reference Data and Sitemap Tests
"""
import xml.etree.ElementTree as ET

import pytest

from conftest import make_note

NS = {"sm": "http://www.sitemaps.org/schemas/sitemap/0.9"}


@pytest.mark.asyncio
async def test_categories_with_note_counts(client, db_session, seller, category, note):
    await make_note(db_session, seller, title="Unlisted", category_id=category.id, is_approved=False)

    response = await client.get("/api/v1/categories")
    assert response.status_code == 200
    categories = response.json()
    assert categories[0]["slug"] == "computer-science"
    assert categories[0]["note_count"] == 1


@pytest.mark.asyncio
async def test_universities(client, university):
    response = await client.get("/api/v1/universities")
    assert response.status_code == 200
    assert [u["short_name"] for u in response.json()] == ["DU"]


@pytest.mark.asyncio
async def test_sitemap_lists_only_listed_notes(client, db_session, seller, category, note):
    hidden = await make_note(db_session, seller, title="Draft", is_active=False)

    response = await client.get("/sitemap.xml")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/xml")

    root = ET.fromstring(response.content)
    locations = [loc.text for loc in root.findall("sm:url/sm:loc", NS)]
    assert "https://notevault.test/" in locations
    assert "https://notevault.test/browse?category=computer-science" in locations
    assert f"https://notevault.test/notes/{note.id}" in locations
    assert f"https://notevault.test/notes/{hidden.id}" not in locations

    note_entry = next(
        url for url in root.findall("sm:url", NS)
        if url.find("sm:loc", NS).text.endswith(str(note.id))
    )
    assert note_entry.find("sm:lastmod", NS) is not None
