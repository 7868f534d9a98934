"""
Content Service - reference data and the XML sitemap.
"""
import xml.etree.ElementTree as ET
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from notevault.core.config import settings
from notevault.core.logging import get_logger
from notevault.modules.content.models import Category, University
from notevault.modules.notes.models import Note

logger = get_logger(__name__)

SITEMAP_NAMESPACE = "http://www.sitemaps.org/schemas/sitemap/0.9"

# (path, changefreq, priority)
STATIC_PAGES = [
    ("/", "daily", "1.0"),
    ("/browse", "daily", "0.9"),
    ("/how-it-works", "monthly", "0.5"),
    ("/about", "monthly", "0.5"),
    ("/contact", "monthly", "0.4"),
]


def listed_notes_filter():
    """Notes visible in the public catalog."""
    return (
        Note.is_active.is_(True),
        Note.is_approved.is_(True),
        Note.is_deleted.is_(False),
    )


class ContentService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_categories(self) -> list[tuple[Category, int]]:
        """Categories with the number of listed notes in each."""
        note_count = (
            select(Note.category_id, func.count(Note.id).label("note_count"))
            .where(*listed_notes_filter())
            .group_by(Note.category_id)
            .subquery()
        )
        result = await self.db.execute(
            select(Category, func.coalesce(note_count.c.note_count, 0))
            .outerjoin(note_count, note_count.c.category_id == Category.id)
            .order_by(Category.name)
        )
        return [(category, count) for category, count in result.all()]

    async def list_universities(self) -> list[University]:
        result = await self.db.execute(select(University).order_by(University.name))
        return list(result.scalars().all())

    async def build_sitemap(self) -> bytes:
        """
        Render the sitemap as XML.

        Contains the static pages, one browse URL per category and one URL
        per listed note (newest first, capped by ``sitemap_note_limit``).
        """
        base_url = settings.frontend_url.rstrip("/")

        urlset = ET.Element("urlset", xmlns=SITEMAP_NAMESPACE)

        def add_url(loc: str, changefreq: str, priority: str, lastmod: datetime | None = None) -> None:
            url = ET.SubElement(urlset, "url")
            ET.SubElement(url, "loc").text = loc
            if lastmod is not None:
                ET.SubElement(url, "lastmod").text = lastmod.date().isoformat()
            ET.SubElement(url, "changefreq").text = changefreq
            ET.SubElement(url, "priority").text = priority

        for path, changefreq, priority in STATIC_PAGES:
            add_url(f"{base_url}{path}", changefreq, priority)

        categories = await self.db.execute(select(Category.slug).order_by(Category.name))
        for slug in categories.scalars():
            add_url(f"{base_url}/browse?category={slug}", "weekly", "0.7")

        notes = await self.db.execute(
            select(Note.id, Note.updated_at)
            .where(*listed_notes_filter())
            .order_by(Note.created_at.desc())
            .limit(settings.sitemap_note_limit)
        )
        note_rows = notes.all()
        for note_id, updated_at in note_rows:
            add_url(f"{base_url}/notes/{note_id}", "weekly", "0.8", lastmod=updated_at)

        logger.info("Sitemap generated", notes=len(note_rows))
        return ET.tostring(urlset, encoding="utf-8", xml_declaration=True)
