"""Tests for the streaming proxy: header filtering, rewriting and relaying."""

import asyncio

import httpx
import pytest

from gateway.exceptions import (
    UpstreamConnectionError,
    UpstreamHttpStatusError,
    UpstreamTimeoutError,
)
from gateway.proxy import (
    StreamingProxy,
    build_response_headers,
    encode_filename,
    select_forwarded_headers,
)
from gateway.types import FileMetadata
from upstream_stub import FILE_BODY, FILE_URL, ChunkedBody


@pytest.fixture
def metadata():
    return FileMetadata(
        fs_id="998877",
        filename="holiday video.mp4",
        size=10,
        md5="e807f1fcf82d132f9bb018ca6738a19f",
    )


@pytest.fixture
def proxy(upstream, settings):
    client = httpx.AsyncClient(transport=upstream.transport)
    return StreamingProxy(client, settings)


async def collect(stream) -> bytes:
    body = b""
    async for chunk in stream.aiter_body():
        body += chunk
    return body


class TestHeaderHelpers:
    """Test the pure header helpers."""

    def test_encode_filename_matches_uri_component_encoding(self):
        assert encode_filename("holiday video.mp4") == "holiday%20video.mp4"
        assert encode_filename("a&b=c.txt") == "a%26b%3Dc.txt"
        assert encode_filename("it's (1)!.zip") == "it's%20(1)!.zip"
        assert encode_filename("файл.pdf") == "%D1%84%D0%B0%D0%B9%D0%BB.pdf"

    def test_select_forwarded_headers_keeps_allow_list_only(self):
        forwarded = select_forwarded_headers({
            "range": "bytes=0-99",
            "user-agent": "TestAgent/1.0",
            "sec-ch-ua-platform": '"Linux"',
            "cookie": "session=secret",
            "authorization": "Bearer secret",
            "host": "gateway.local",
            "x-forwarded-for": "10.0.0.1",
        })

        assert forwarded == {
            "Range": "bytes=0-99",
            "User-Agent": "TestAgent/1.0",
            "Sec-CH-UA-Platform": '"Linux"',
        }

    def test_select_forwarded_headers_is_case_insensitive(self):
        forwarded = select_forwarded_headers({"RANGE": "bytes=5-", "If-Range": '"etag"'})

        assert forwarded == {"Range": "bytes=5-", "If-Range": '"etag"'}

    def test_response_headers_for_full_body(self, metadata):
        headers = build_response_headers(metadata, {"Content-Type": "video/mp4"}, 200)

        assert headers["Content-Type"] == "video/mp4"
        assert headers["Content-Disposition"] == "attachment; filename*=UTF-8''holiday%20video.mp4"
        assert headers["Content-Length"] == "10"
        assert headers["Accept-Ranges"] == "bytes"
        assert headers["Cache-Control"] == "public, max-age=3600"
        assert headers["X-File-Name"] == "holiday%20video.mp4"
        assert headers["X-File-Size"] == "10"
        assert headers["X-File-Md5"] == "e807f1fcf82d132f9bb018ca6738a19f"
        assert headers["Access-Control-Allow-Origin"] == "*"

    def test_response_headers_for_partial_body(self, metadata):
        headers = build_response_headers(
            metadata,
            {"Content-Type": "video/mp4", "Content-Range": "bytes 2-5/10", "Content-Length": "4"},
            206,
        )

        assert headers["Content-Range"] == "bytes 2-5/10"
        assert headers["Content-Length"] == "4"

    def test_response_headers_default_content_type(self, metadata):
        headers = build_response_headers(metadata)

        assert headers["Content-Type"] == "application/octet-stream"

    def test_response_headers_omit_length_for_unknown_size(self):
        unknown = FileMetadata(fs_id="1", filename="", size=0, md5="")

        headers = build_response_headers(unknown)

        assert "Content-Length" not in headers
        assert headers["Content-Disposition"] == "attachment; filename*=UTF-8''download"

    def test_response_headers_omit_length_for_encoded_body(self, metadata):
        headers = build_response_headers(
            metadata, {"Content-Encoding": "gzip", "Content-Length": "7"}, 200
        )

        assert "Content-Length" not in headers


class TestBuildRequest:
    """Test the outbound request composition."""

    def test_defaults_are_present(self, proxy, metadata):
        request = proxy.build_request(FILE_URL, metadata, {})

        assert request.forwarded_headers["Referer"] == "https://helper.test/"
        assert request.forwarded_headers["Accept-Encoding"] == "identity"
        assert "User-Agent" in request.forwarded_headers
        assert request.is_range_request is False

    def test_client_headers_override_defaults(self, proxy, metadata):
        request = proxy.build_request(
            FILE_URL, metadata, {"user-agent": "TestAgent/1.0", "range": "bytes=2-5"}
        )

        assert request.forwarded_headers["User-Agent"] == "TestAgent/1.0"
        assert request.forwarded_headers["Range"] == "bytes=2-5"
        assert request.is_range_request is True


class TestStream:
    """Test opening and relaying the upstream body."""

    @pytest.mark.asyncio
    async def test_full_body_is_relayed(self, proxy, upstream, metadata):
        stream = await proxy.stream(FILE_URL, metadata, {})

        assert stream.status_code == 200
        assert stream.headers["Content-Length"] == "10"
        assert await collect(stream) == FILE_BODY
        assert stream.bytes_sent == 10
        assert stream.response.is_closed

    @pytest.mark.asyncio
    async def test_body_is_chunked(self, proxy, metadata):
        stream = await proxy.stream(FILE_URL, metadata, {})

        chunks = [chunk async for chunk in stream.aiter_body()]

        assert all(len(chunk) <= 4 for chunk in chunks)
        assert b"".join(chunks) == FILE_BODY

    @pytest.mark.asyncio
    async def test_range_is_forwarded_verbatim(self, proxy, upstream, metadata):
        stream = await proxy.stream(FILE_URL, metadata, {"range": "bytes=2-5"})

        assert upstream.file_requests[0].headers["range"] == "bytes=2-5"
        assert stream.status_code == 206
        assert stream.headers["Content-Range"] == "bytes 2-5/10"
        assert await collect(stream) == b"2345"

    @pytest.mark.asyncio
    async def test_no_range_is_added_when_absent(self, proxy, upstream, metadata):
        stream = await proxy.stream(FILE_URL, metadata, {"accept": "*/*"})
        await collect(stream)

        assert "range" not in upstream.file_requests[0].headers

    @pytest.mark.asyncio
    async def test_sensitive_client_headers_never_reach_the_file_host(self, proxy, upstream, metadata):
        stream = await proxy.stream(
            FILE_URL, metadata, {"cookie": "session=secret", "authorization": "Bearer x"}
        )
        await collect(stream)

        sent = upstream.file_requests[0].headers
        assert "cookie" not in sent
        assert "authorization" not in sent

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [403, 404, 410, 500])
    async def test_unexpected_status_raises(self, proxy, upstream, metadata, status_code):
        upstream.file_response = lambda request: httpx.Response(status_code, text="denied")

        with pytest.raises(UpstreamHttpStatusError) as exc_info:
            await proxy.stream(FILE_URL, metadata, {})

        assert exc_info.value.status_code == status_code
        assert exc_info.value.is_client_error is (status_code < 500)

    @pytest.mark.asyncio
    async def test_timeout_while_opening(self, proxy, upstream, metadata):
        def timeout(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        upstream.file_response = timeout

        with pytest.raises(UpstreamTimeoutError):
            await proxy.stream(FILE_URL, metadata, {})

    @pytest.mark.asyncio
    async def test_unreachable_file_host(self, proxy, upstream, metadata):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        upstream.file_response = refuse

        with pytest.raises(UpstreamConnectionError):
            await proxy.stream(FILE_URL, metadata, {})

    @pytest.mark.asyncio
    async def test_aclose_is_idempotent(self, proxy, metadata):
        stream = await proxy.stream(FILE_URL, metadata, {})

        await stream.aclose()
        await stream.aclose()

        assert stream.response.is_closed


class TestInterruptedStream:
    """Test that an interrupted relay stops copying and releases the upstream."""

    @pytest.fixture
    def body(self, upstream):
        chunked = ChunkedBody([b"0123", b"4567", b"89"])
        upstream.file_response = lambda request: httpx.Response(
            200, stream=chunked, headers={"Content-Type": "video/mp4"}
        )
        return chunked

    @pytest.mark.asyncio
    async def test_closing_relay_mid_body_releases_upstream(self, proxy, metadata, body):
        stream = await proxy.stream(FILE_URL, metadata, {})
        relay = stream.aiter_body()

        first = await relay.__anext__()
        await relay.aclose()

        assert first == b"0123"
        assert stream.bytes_sent == 4
        assert body.sent == 4
        assert body.closed
        assert stream.response.is_closed

    @pytest.mark.asyncio
    async def test_cancelled_relay_releases_upstream_and_propagates(self, proxy, metadata, body):
        stream = await proxy.stream(FILE_URL, metadata, {})
        relay = stream.aiter_body()
        await relay.__anext__()

        with pytest.raises(asyncio.CancelledError):
            await relay.athrow(asyncio.CancelledError())

        assert body.sent == 4
        assert body.closed
        assert stream.response.is_closed

    @pytest.mark.asyncio
    async def test_stall_ends_relay_without_raising(self, proxy, upstream, metadata):
        stalled = ChunkedBody([b"0123", b"4567"], error=httpx.ReadTimeout("no data for 60s"))
        upstream.file_response = lambda request: httpx.Response(200, stream=stalled)

        stream = await proxy.stream(FILE_URL, metadata, {})

        assert await collect(stream) == b"01234567"
        assert stream.bytes_sent == 8
        assert stalled.closed
        assert stream.response.is_closed

    @pytest.mark.asyncio
    async def test_dropped_connection_ends_relay_without_raising(self, proxy, upstream, metadata):
        dropped = ChunkedBody([b"0123"], error=httpx.ReadError("connection reset"))
        upstream.file_response = lambda request: httpx.Response(200, stream=dropped)

        stream = await proxy.stream(FILE_URL, metadata, {})

        assert await collect(stream) == b"0123"
        assert stream.bytes_sent == 4
        assert stream.response.is_closed
