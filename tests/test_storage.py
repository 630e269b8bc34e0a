import base64
import json

import httpx
import pytest

from cartcode.exceptions import InvalidIdentifierError, StoreUnavailableError
from cartcode.settings import StoreSettings
from cartcode.storage import build_locator, build_store, identifier_from_text
from cartcode.storage.ipfs import IpfsStore
from cartcode.storage.local import LocalStore

CARTRIDGE = b"HELLO-CARTRIDGE!"
API_URL = "https://ipfs.test:5001"
GATEWAY = "https://ipfs.test/ipfs/"


def _store(handler, **kwargs) -> IpfsStore:
    return IpfsStore(API_URL, GATEWAY, transport=httpx.MockTransport(handler), **kwargs)


@pytest.mark.asyncio()
async def test_upload_posts_multipart_and_returns_hash() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = request.content
        seen["content_type"] = request.headers["content-type"]
        return httpx.Response(200, json={"Name": "cart", "Hash": "QmFakeHash123", "Size": "24"})

    identifier = await _store(handler).upload(CARTRIDGE)

    assert identifier == "QmFakeHash123"
    assert seen["method"] == "POST"
    assert seen["path"] == "/api/v0/add"
    assert str(seen["content_type"]).startswith("multipart/form-data")
    assert CARTRIDGE in seen["body"]


@pytest.mark.asyncio()
async def test_upload_reads_last_line_of_streamed_response() -> None:
    lines = [{"Name": "cart", "Bytes": 16}, {"Name": "cart", "Hash": "QmLast", "Size": "24"}]
    body = "\n".join(json.dumps(line) for line in lines) + "\n"

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=body)

    assert await _store(handler).upload(CARTRIDGE) == "QmLast"


@pytest.mark.asyncio()
async def test_upload_sends_basic_auth() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        expected = base64.b64encode(b"project:secret").decode("ascii")
        assert request.headers["authorization"] == f"Basic {expected}"
        return httpx.Response(200, json={"Hash": "QmAuth"})

    assert await _store(handler, auth=("project", "secret")).upload(CARTRIDGE) == "QmAuth"


@pytest.mark.asyncio()
async def test_upload_http_error_is_store_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text="project id required")

    with pytest.raises(StoreUnavailableError):
        await _store(handler).upload(CARTRIDGE)


@pytest.mark.asyncio()
async def test_upload_network_error_is_store_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(StoreUnavailableError):
        await _store(handler).upload(CARTRIDGE)


@pytest.mark.asyncio()
async def test_upload_unreadable_response_is_store_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>gateway</html>")

    with pytest.raises(StoreUnavailableError):
        await _store(handler).upload(CARTRIDGE)


@pytest.mark.asyncio()
async def test_upload_without_hash_is_invalid_identifier() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"Name": "cart", "Hash": ""})

    with pytest.raises(InvalidIdentifierError):
        await _store(handler).upload(CARTRIDGE)


@pytest.mark.asyncio()
async def test_fetch_returns_raw_bytes() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.path == "/api/v0/cat"
        assert request.url.params["arg"] == "QmFakeHash123"
        return httpx.Response(200, content=CARTRIDGE)

    assert await _store(handler).fetch("QmFakeHash123") == CARTRIDGE


@pytest.mark.asyncio()
async def test_fetch_not_found_is_store_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"Message": "merkledag: not found"})

    with pytest.raises(StoreUnavailableError):
        await _store(handler).fetch("QmMissing")


@pytest.mark.asyncio()
@pytest.mark.parametrize("identifier", ["", "   "])
async def test_fetch_empty_identifier_makes_no_request(identifier) -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, content=CARTRIDGE)

    with pytest.raises(InvalidIdentifierError):
        await _store(handler).fetch(identifier)
    assert calls == []


def test_gateway_gets_trailing_slash() -> None:
    store = IpfsStore(API_URL, "https://ipfs.test/ipfs")
    assert store.locator_base == GATEWAY


@pytest.mark.asyncio()
async def test_local_store_roundtrip(tmp_path) -> None:
    store = LocalStore(tmp_path / "store")
    identifier = await store.upload(CARTRIDGE)
    assert identifier == await store.upload(CARTRIDGE)
    assert len(identifier) == 64
    assert await store.fetch(identifier) == CARTRIDGE
    assert store.locator_base.startswith("file://")


@pytest.mark.asyncio()
async def test_local_store_errors(tmp_path) -> None:
    store = LocalStore(tmp_path / "store")
    with pytest.raises(InvalidIdentifierError):
        await store.fetch("")
    with pytest.raises(StoreUnavailableError):
        await store.fetch("0" * 64)
    with pytest.raises(StoreUnavailableError):
        await store.fetch("../../etc/passwd")


def test_locator_helpers() -> None:
    locator = build_locator(GATEWAY, "QmFakeHash123")
    assert locator == "https://ipfs.test/ipfs/QmFakeHash123"
    assert identifier_from_text(GATEWAY, locator) == "QmFakeHash123"
    assert identifier_from_text(GATEWAY, "QmFakeHash123") == "QmFakeHash123"
    assert identifier_from_text(GATEWAY, "https://other.gw/ipfs/QmOther?filename=x") == "QmOther"
    assert identifier_from_text(GATEWAY, "https://other.gw/") == ""


def test_build_store(tmp_path) -> None:
    assert isinstance(build_store(StoreSettings()), IpfsStore)
    local = build_store(StoreSettings(backend="local", local_root=tmp_path))
    assert isinstance(local, LocalStore)


@pytest.mark.asyncio()
async def test_local_store_rewrites_on_every_upload(tmp_path) -> None:
    store = LocalStore(tmp_path / "store")
    identifier = await store.upload(CARTRIDGE)
    stored = tmp_path / "store" / identifier[:2] / identifier
    stored.write_bytes(b"stale")

    assert await store.upload(CARTRIDGE) == identifier
    assert stored.read_bytes() == CARTRIDGE
