"""
Operator Script Tests
"""
import uuid

import httpx
import pytest

from scripts.check_download import check_download, check_signed_url

SIGNED_URL = "https://storage.notevault.test/notevault-notes/notes/os.pdf?X-Amz-Signature=abc123"


def _storage_handler(seen: list[httpx.Request]):
    """Object storage that only honours the method the URL was signed for."""

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.host == "api.notevault.test":
            return httpx.Response(200, json={"download_url": SIGNED_URL, "expires_in": 3600})
        if request.method != "GET":
            return httpx.Response(403, text="SignatureDoesNotMatch")
        if request.headers.get("Range") == "bytes=0-0":
            return httpx.Response(206, content=b"%", headers={"content-type": "application/pdf"})
        return httpx.Response(200, content=b"%PDF-1.7", headers={"content-type": "application/pdf"})

    return handler


@pytest.mark.asyncio
async def test_signed_url_checked_with_ranged_get():
    seen: list[httpx.Request] = []
    async with httpx.AsyncClient(transport=httpx.MockTransport(_storage_handler(seen))) as client:
        ok = await check_download(client, "https://api.notevault.test", uuid.uuid4(), "token")

    assert ok is True
    storage_request = seen[-1]
    assert storage_request.method == "GET"
    assert storage_request.headers["Range"] == "bytes=0-0"


@pytest.mark.asyncio
async def test_rejected_signature_fails_the_check():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, text="SignatureDoesNotMatch")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        assert await check_signed_url(client, SIGNED_URL) is False


@pytest.mark.asyncio
async def test_download_endpoint_error_stops_the_check():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(403, json={"error": {"code": "PURCHASE_REQUIRED"}})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        ok = await check_download(client, "https://api.notevault.test", uuid.uuid4(), "token")

    assert ok is False
    assert len(seen) == 1
