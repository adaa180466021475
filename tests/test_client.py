from objectstorage_client.client import close_shared_transport
from objectstorage_client.client import shared_transport
from objectstorage_client.client import StorageClient
from objectstorage_client.errors import ClientTransportError
from objectstorage_client.errors import CredentialsMissing
from objectstorage_client.errors import ServerTransportError
from objectstorage_client.interfaces import IStorageClient
from objectstorage_client.retry import RetryPolicy
from objectstorage_client.streams import bytes_stream_factory

import asyncio
import httpx
import json
import jwt
import logging
import pytest
import time


URI = "https://ma.es.ter"
SECRET = "jwt"


class Server:
    """Scripted MockTransport handler recording every request it sees."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, int):
            return httpx.Response(reply)
        return reply


async def _noop_sleep(seconds):
    pass


def _client(server, jwt_secret=SECRET, retries=3):
    return StorageClient(
        URI,
        jwt_secret=jwt_secret,
        retry_policy=RetryPolicy(retries_count=retries, retry_delay=0),
        transport=httpx.MockTransport(server),
        sleep=_noop_sleep,
    )


def _warnings(caplog):
    return [
        r
        for r in caplog.records
        if r.name == "objectstorage_client.retry" and r.levelno == logging.WARNING
    ]


class TestConstruction:
    def test_interface_provided(self):
        assert IStorageClient.providedBy(_client(Server(200)))

    def test_uri_required(self):
        with pytest.raises(ValueError):
            StorageClient("")

    def test_uri_must_be_http(self):
        with pytest.raises(ValueError):
            StorageClient("ftp://ma.es.ter")

    def test_cleartext_warning(self, caplog):
        StorageClient("http://ma.es.ter", transport=httpx.MockTransport(Server(200)))
        assert any("cleartext" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_shared_transport_reopens_after_close(self):
        first = shared_transport()
        assert StorageClient(URI)._http._transport is first
        await close_shared_transport()
        second = shared_transport()
        assert second is not first
        await close_shared_transport()


class TestGet:
    @pytest.mark.asyncio
    async def test_get_streams_object(self):
        server = Server(httpx.Response(200, content=b"raw object bytes"))
        client = _client(server)
        response = await client.get("1")
        assert await response.aread() == b"raw object bytes"
        request = server.requests[0]
        assert request.method == "GET"
        assert request.url == httpx.URL(f"{URI}/objects/1")
        assert request.headers["authorization"] == f"Bearer {SECRET}"

    @pytest.mark.asyncio
    async def test_get_retries_until_success(self, caplog):
        server = Server(500, httpx.ConnectError("ECONNRESET"), httpx.Response(200, json={"test": "test"}))
        client = _client(server)
        response = await client.get("1")
        assert json.loads(await response.aread()) == {"test": "test"}
        assert len(server.requests) == 3
        assert len(_warnings(caplog)) == 2

    @pytest.mark.asyncio
    async def test_get_fails_after_retries(self):
        server = Server(520)
        client = _client(server)
        with pytest.raises(ServerTransportError, match="Server error during request"):
            await client.get("1")
        assert len(server.requests) == 3

    @pytest.mark.asyncio
    async def test_not_found_is_single_call(self, caplog):
        server = Server(404)
        client = _client(server)
        with pytest.raises(ClientTransportError) as exc_info:
            await client.get("missing")
        assert exc_info.value.status == 404
        assert len(server.requests) == 1
        assert _warnings(caplog) == []

    @pytest.mark.asyncio
    async def test_object_id_is_quoted(self):
        server = Server(200)
        client = _client(server)
        await client.get("a/b c")
        assert server.requests[0].url.raw_path == b"/objects/a%2Fb%20c"

    @pytest.mark.asyncio
    async def test_per_call_token(self):
        server = Server(200)
        client = _client(server, jwt_secret=None)
        await client.get("1", credential="pre-signed")
        assert server.requests[0].headers["authorization"] == "Bearer pre-signed"

    @pytest.mark.asyncio
    async def test_per_call_claims_are_signed(self):
        server = Server(200)
        client = _client(server)
        await client.get("1", credential={"tenantId": "t1"})
        token = server.requests[0].headers["authorization"].removeprefix("Bearer ")
        assert jwt.decode(token, SECRET, algorithms=["HS256"]) == {"tenantId": "t1"}

    @pytest.mark.asyncio
    async def test_get_all_sends_query(self):
        server = Server(httpx.Response(200, json=[]))
        client = _client(server)
        await client.get_all({"query[status]": "READY"})
        assert server.requests[0].url.params["query[status]"] == "READY"
        assert server.requests[0].url.path == "/objects"


class TestWrite:
    @pytest.mark.asyncio
    async def test_post_retries_with_fresh_body(self):
        server = Server(
            httpx.ConnectError("ECONNREFUSED"),
            505,
            httpx.Response(200, json={"objectId": "abc"}),
        )
        client = _client(server)
        calls = []

        def body():
            calls.append(1)
            return bytes_stream_factory(b'{"test":"test"}')()

        response = await client.post(body, headers={"content-type": "application/json"})
        assert json.loads(await response.aread()) == {"objectId": "abc"}
        assert len(calls) == 3
        assert len(server.requests) == 3
        for request in server.requests:
            assert request.content == b'{"test":"test"}'
            assert request.headers["content-type"] == "application/json"

    @pytest.mark.asyncio
    async def test_body_factory_called_once_per_attempt(self):
        server = Server(500)
        client = _client(server, retries=4)
        calls = []

        def body():
            calls.append(1)
            return [b"chunk-1", b"chunk-2"]

        with pytest.raises(ServerTransportError):
            await client.put("1", body)
        assert len(calls) == len(server.requests) == 4
        assert server.requests[-1].content == b"chunk-1chunk-2"

    @pytest.mark.asyncio
    async def test_async_body_factory(self):
        server = Server(200)
        client = _client(server)

        async def body():
            async def gen():
                yield b"async "
                yield b"body"

            return gen()

        await client.post(body)
        assert server.requests[0].content == b"async body"

    @pytest.mark.asyncio
    async def test_sync_file_body_does_not_block_loop(self):
        server = Server(200)
        client = _client(server)

        class SlowFile:
            def __init__(self):
                self.chunks = [b"slow ", b"file ", b"body"]

            def read(self, size):
                time.sleep(0.2)
                return self.chunks.pop(0) if self.chunks else b""

        ticks = []
        done = asyncio.Event()

        async def ticker():
            while not done.is_set():
                ticks.append(time.monotonic())
                await asyncio.sleep(0.01)

        task = asyncio.create_task(ticker())
        try:
            await client.post(SlowFile)
        finally:
            done.set()
            await task
        assert server.requests[0].content == b"slow file body"
        gaps = [later - earlier for earlier, later in zip(ticks, ticks[1:])]
        assert len(ticks) > 10
        assert max(gaps) < 0.15

    @pytest.mark.asyncio
    async def test_prebuilt_stream_rejected(self):
        server = Server(200)
        client = _client(server)
        with pytest.raises(TypeError):
            await client.post(b"not a factory")


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_one(self):
        server = Server(204)
        client = _client(server)
        response = await client.delete("1")
        assert response.status_code == 204
        assert server.requests[0].method == "DELETE"
        assert server.requests[0].url.path == "/objects/1"

    @pytest.mark.asyncio
    async def test_delete_many(self):
        server = Server(204)
        client = _client(server)
        await client.delete_many({"query[status]": "LOCKED"})
        assert server.requests[0].url.params["query[status]"] == "LOCKED"

    @pytest.mark.asyncio
    async def test_delete_many_requires_params(self):
        client = _client(Server(204))
        with pytest.raises(ValueError):
            await client.delete_many({})


class TestCredentials:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["get", "delete"])
    async def test_missing_credentials_make_no_calls(self, method):
        server = Server(200)
        client = _client(server, jwt_secret=None)
        with pytest.raises(CredentialsMissing):
            await getattr(client, method)("1")
        assert server.requests == []

    @pytest.mark.asyncio
    async def test_missing_credentials_on_write_make_no_calls(self):
        server = Server(200)
        client = _client(server, jwt_secret=None)
        calls = []

        def body():
            calls.append(1)
            return b"data"

        with pytest.raises(CredentialsMissing):
            await client.post(body)
        assert server.requests == []
        assert calls == []
