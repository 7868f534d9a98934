"""
Diagnostic: request a signed download link for a note and check that it resolves.

Mints an access token for a user who may download the note (its seller, or the
user given with --email), calls the download endpoint of a running API, then
fetches the first byte of the returned signed URL. The URL is signed for GET,
so the check uses a ranged GET rather than HEAD.

Usage:
    python scripts/check_download.py <note_id> [--email buyer@example.com] [--api http://localhost:8000]
"""
import argparse
import asyncio
import sys
import uuid

import httpx
from sqlalchemy import select

from notevault.core.config import settings
from notevault.core.database import async_session_maker, close_db
from notevault.core.logging import configure_logging, get_logger
from notevault.core.security import create_access_token
from notevault.modules.auth.models import User
from notevault.modules.auth.service import normalize_email
from notevault.modules.notes.models import Note

logger = get_logger("scripts.check_download")

# Full body or the requested first byte
OK_STATUSES = (200, 206)


async def _pick_user(note_id: uuid.UUID, email: str | None) -> User | None:
    async with async_session_maker() as session:
        if email:
            result = await session.execute(select(User).where(User.email == normalize_email(email)))
            return result.scalar_one_or_none()
        note = await session.get(Note, note_id)
        if note is None:
            logger.error("Note not found", note_id=str(note_id))
            return None
        return await session.get(User, note.seller_id)


async def check_signed_url(client: httpx.AsyncClient, signed_url: str) -> bool:
    response = await client.get(signed_url, headers={"Range": "bytes=0-0"})
    logger.info(
        "Signed URL",
        status=response.status_code,
        content_type=response.headers.get("content-type"),
        content_disposition=response.headers.get("content-disposition"),
    )
    return response.status_code in OK_STATUSES


async def check_download(
    client: httpx.AsyncClient,
    api_url: str,
    note_id: uuid.UUID,
    token: str,
) -> bool:
    endpoint = f"{api_url.rstrip('/')}{settings.api_v1_str}/notes/{note_id}/download"
    response = await client.get(endpoint, headers={"Authorization": f"Bearer {token}"})
    logger.info("Download endpoint", status=response.status_code, body=response.text[:500])
    if response.status_code != 200:
        return False
    return await check_signed_url(client, response.json()["download_url"])


async def run(note_id: uuid.UUID, email: str | None, api_url: str) -> bool:
    try:
        user = await _pick_user(note_id, email)
    finally:
        await close_db()
    if user is None:
        logger.error("No user to check with", email=email)
        return False

    token = create_access_token(subject=str(user.id))
    async with httpx.AsyncClient(timeout=15.0) as client:
        return await check_download(client, api_url, note_id, token)


def main() -> int:
    parser = argparse.ArgumentParser(description="Check a note's signed download link")
    parser.add_argument("note_id", type=uuid.UUID)
    parser.add_argument("--email", help="Check as this user instead of the note's seller")
    parser.add_argument("--api", default="http://localhost:8000", help="API base URL")
    args = parser.parse_args()

    configure_logging()
    try:
        ok = asyncio.run(run(args.note_id, args.email, args.api))
    except httpx.HTTPError as e:
        logger.error("Download check failed", error=str(e))
        return 1
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
