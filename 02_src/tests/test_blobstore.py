"""Tests for HttpBlobStore."""

import httpx
import pytest

from ledgerchat.blobstore import HttpBlobStore, gateway_url
from ledgerchat.errors import BlobStoreFailed


def make_store(handler):
    return HttpBlobStore(
        api_url="http://ipfs.local:5001/",
        gateway_base="https://gw.example/ipfs/",
        transport=httpx.MockTransport(handler),
    )


class TestGatewayUrl:
    """Tests for gateway URL construction."""

    def test_joins_base_and_id(self):
        assert gateway_url("https://ipfs.io/ipfs", "QmA") == "https://ipfs.io/ipfs/QmA"

    def test_trailing_slash(self):
        assert gateway_url("https://ipfs.io/ipfs/", "QmA") == "https://ipfs.io/ipfs/QmA"


class TestPut:
    """Tests for uploads."""

    @pytest.mark.asyncio
    async def test_put_returns_hash(self):
        """Test that put posts the file and returns the content id."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = request.read()
            return httpx.Response(200, json={"Name": "a.txt", "Hash": "QmHash", "Size": "5"})

        store = make_store(handler)
        try:
            content_id = await store.put(b"hello", "a.txt")
        finally:
            await store.close()

        assert content_id == "QmHash"
        assert seen["url"] == "http://ipfs.local:5001/api/v0/add"
        assert b'filename="a.txt"' in seen["body"]
        assert b"hello" in seen["body"]

    @pytest.mark.asyncio
    async def test_http_error(self):
        store = make_store(lambda request: httpx.Response(500, text="boom"))
        with pytest.raises(BlobStoreFailed):
            await store.put(b"x", "x.bin")
        await store.close()

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        store = make_store(handler)
        with pytest.raises(BlobStoreFailed):
            await store.put(b"x", "x.bin")
        await store.close()

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, text="not json"),
            httpx.Response(200, json={"Name": "x.bin"}),
            httpx.Response(200, json=["QmHash"]),
        ],
    )
    @pytest.mark.asyncio
    async def test_bad_response(self, response):
        """Test that responses without a hash are failures."""
        store = make_store(lambda request: response)
        with pytest.raises(BlobStoreFailed):
            await store.put(b"x", "x.bin")
        await store.close()


class TestFetch:
    """Tests for downloads."""

    @pytest.mark.asyncio
    async def test_fetch_from_gateway(self):
        """Test that fetch reads from the gateway URL."""

        def handler(request):
            assert str(request.url) == "https://gw.example/ipfs/QmHash"
            return httpx.Response(200, content=b"payload")

        store = make_store(handler)
        assert await store.fetch("QmHash") == b"payload"
        assert store.gateway_url("QmHash") == "https://gw.example/ipfs/QmHash"
        await store.close()

    @pytest.mark.asyncio
    async def test_fetch_missing(self):
        store = make_store(lambda request: httpx.Response(404))
        with pytest.raises(BlobStoreFailed):
            await store.fetch("QmNope")
        await store.close()
