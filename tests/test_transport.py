"""Tests for the HTTP transport."""

import json

import httpx
import pytest

from claude_webchat.errors import ProtocolError, TransportError
from claude_webchat.transport import HTTPResult, TransportClient, build_headers


def make_transport(handler) -> TransportClient:
    return TransportClient(base_url="https://claude.test/", timeout=5.0, transport=httpx.MockTransport(handler))


class TestBuildHeaders:
    def test_raw_token_is_wrapped(self):
        headers = build_headers("sk-ant-sid01-abc", "https://claude.ai")
        assert headers["Cookie"] == "sessionKey=sk-ant-sid01-abc"

    def test_cookie_header_passed_through(self):
        cookie = "sessionKey=sk-ant-sid01-abc; lastActiveOrg=org-1"
        assert build_headers(cookie, "https://claude.ai")["Cookie"] == cookie

    def test_browser_headers(self):
        headers = build_headers("t", "https://claude.ai")
        assert headers["Origin"] == "https://claude.ai"
        assert headers["Referer"] == "https://claude.ai/"
        assert headers["sec-fetch-mode"] == "cors"
        assert "User-Agent" in headers
        assert "Accept-Language" in headers
        assert "Content-Type" not in headers

    def test_body_adds_content_type(self):
        assert build_headers("t", "https://claude.ai", has_body=True)["Content-Type"] == "application/json"


class TestHTTPResult:
    def test_json(self):
        assert HTTPResult(200, '[{"uuid":"org-1"}]').json() == [{"uuid": "org-1"}]

    def test_bad_json_raises_protocol_error(self):
        with pytest.raises(ProtocolError) as exc:
            HTTPResult(200, "<html>").json()
        assert exc.value.body == "<html>"

    def test_ok(self):
        assert HTTPResult(204, "").ok
        assert not HTTPResult(401, "").ok


class TestTransportClient:
    @pytest.mark.asyncio
    async def test_request_sends_json_body(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(201, json={"uuid": "conv-1"})

        transport = make_transport(handler)
        headers = transport.headers_for("tok", has_body=True)
        result = await transport.request("/api/x", "POST", headers, {"uuid": "u", "name": ""})

        assert result.status == 201
        assert result.json() == {"uuid": "conv-1"}
        request = seen[0]
        assert str(request.url) == "https://claude.test/api/x"
        assert json.loads(request.content) == {"uuid": "u", "name": ""}
        assert request.headers["cookie"] == "sessionKey=tok"
        assert request.headers["origin"] == "https://claude.test"
        await transport.aclose()

    @pytest.mark.asyncio
    async def test_error_status_is_returned_not_raised(self):
        transport = make_transport(lambda request: httpx.Response(403, text="forbidden"))
        result = await transport.request("/api/organizations")
        assert result.status == 403
        assert result.body == "forbidden"
        assert not result.ok

    @pytest.mark.asyncio
    async def test_connection_failure_raises_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        transport = make_transport(handler)
        with pytest.raises(TransportError, match="connection refused"):
            await transport.request("/api/organizations")

    @pytest.mark.asyncio
    async def test_open_stream_yields_chunks(self):
        async def body():
            yield b"data: one\n"
            yield b"data: two\n"

        transport = make_transport(lambda request: httpx.Response(200, content=body()))
        async with transport.open_stream("/stream", "POST", {}, {"prompt": "hi"}) as response:
            assert response.status == 200
            chunks = [c async for c in response.iter_bytes()]
        assert b"".join(chunks) == b"data: one\ndata: two\n"

    @pytest.mark.asyncio
    async def test_open_stream_error_status_body(self):
        transport = make_transport(lambda request: httpx.Response(429, text="rate limited"))
        async with transport.open_stream("/stream", "POST", {}, {}) as response:
            assert response.status == 429
            assert await response.read_text() == "rate limited"

    @pytest.mark.asyncio
    async def test_failure_mid_stream_raises_transport_error(self):
        async def body():
            yield b"data: one\n"
            raise httpx.ReadError("connection reset")

        transport = make_transport(lambda request: httpx.Response(200, content=body()))
        received = []
        with pytest.raises(TransportError, match="connection reset"):
            async with transport.open_stream("/stream", "POST", {}, {}) as response:
                async for chunk in response.iter_bytes():
                    received.append(chunk)
        assert received == [b"data: one\n"]
