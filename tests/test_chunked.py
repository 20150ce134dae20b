"""
Tests for the chunked upload controller.
"""

from __future__ import annotations

import io
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from cldsdk.config import MIN_CHUNK_SIZE
from cldsdk.exceptions import CldError, PartSizeError, ServerError
from cldsdk.signing import sign_request
from cldsdk.uploader import (
    ChunkedUploadController,
    PartAck,
    TransportResponse,
    UploadResult,
    UploadState,
)

URL = "https://api.cloudinary.com/v1_1/test123/raw/upload"
TOTAL = MIN_CHUNK_SIZE * 2 + 100


def make_controller(stream, transport, total_size=None, part_size=MIN_CHUNK_SIZE, signer=dict):
    return ChunkedUploadController(
        stream=stream,
        transport=transport,
        url=URL,
        params={"public_id": "big"},
        signer=signer,
        part_size=part_size,
        total_size=total_size,
        filename="big.bin",
        upload_id="session-1",
    )


@pytest.fixture
def three_part_transport(respond) -> MagicMock:
    transport = MagicMock()
    transport.send = AsyncMock(
        side_effect=[
            respond({"done": False}),
            respond({"done": False}),
            respond({"public_id": "big", "bytes": TOTAL, "etag": "server-etag"}),
        ]
    )
    return transport


class TestControllerInit:
    """Tests for session setup."""

    def test_part_size_minimum(self, mock_transport):
        with pytest.raises(PartSizeError) as exc_info:
            make_controller(io.BytesIO(b""), mock_transport, part_size=MIN_CHUNK_SIZE - 1)
        assert exc_info.value.message == "All parts except EOF-chunk must be larger than 5mb"
        assert exc_info.value.size == MIN_CHUNK_SIZE - 1

    def test_initial_state(self, mock_transport):
        controller = make_controller(io.BytesIO(b"x"), mock_transport, total_size=1)
        assert controller.state == UploadState.INIT
        assert controller.session.upload_id == "session-1"
        assert controller.session.offset == 0
        assert controller.result is None
        assert not controller.finished

    def test_generated_upload_id(self, mock_transport):
        controller = ChunkedUploadController(
            io.BytesIO(b"x"), mock_transport, URL, {}, dict, MIN_CHUNK_SIZE
        )
        assert len(controller.session.upload_id) == 16


class TestChunkedUpload:
    """Tests for part submission."""

    @pytest.mark.asyncio
    async def test_parts_and_ranges(self, three_part_transport, sent):
        controller = make_controller(io.BytesIO(b"x" * TOTAL), three_part_transport, TOTAL)

        result = await controller.run()

        requests = sent(three_part_transport)
        assert [r.headers["Content-Range"] for r in requests] == [
            f"bytes 0-{MIN_CHUNK_SIZE - 1}/{TOTAL}",
            f"bytes {MIN_CHUNK_SIZE}-{MIN_CHUNK_SIZE * 2 - 1}/{TOTAL}",
            f"bytes {MIN_CHUNK_SIZE * 2}-{TOTAL - 1}/{TOTAL}",
        ]
        assert {r.headers["X-Unique-Upload-Id"] for r in requests} == {"session-1"}
        assert [len(r.file.content) for r in requests] == [MIN_CHUNK_SIZE, MIN_CHUNK_SIZE, 100]
        assert all(r.url == URL and r.file.filename == "big.bin" for r in requests)

        assert isinstance(result, UploadResult)
        assert result.bytes == TOTAL
        assert result.etag == "server-etag"
        assert controller.state == UploadState.DONE
        assert controller.session.offset == TOTAL
        assert controller.session.parts_count == 3

    @pytest.mark.asyncio
    async def test_fresh_timestamp_per_part(self, three_part_transport, sent, settings):
        controller = make_controller(
            io.BytesIO(b"x" * TOTAL),
            three_part_transport,
            TOTAL,
            signer=lambda fields: sign_request(fields, settings=settings),
        )

        with patch("cldsdk.uploader._chunked.now", side_effect=["1000", "1001", "1002"]):
            await controller.run()

        requests = sent(three_part_transport)
        assert [r.fields["timestamp"] for r in requests] == ["1000", "1001", "1002"]
        assert len({r.fields["signature"] for r in requests}) == 3
        assert all(r.fields["public_id"] == "big" for r in requests)

    @pytest.mark.asyncio
    async def test_step_by_step(self, three_part_transport):
        controller = make_controller(io.BytesIO(b"x" * TOTAL), three_part_transport, TOTAL)

        ack = await controller.submit_next_part()
        assert isinstance(ack, PartAck)
        assert controller.state == UploadState.PART_SENT
        assert controller.session.offset == MIN_CHUNK_SIZE

        await controller.submit_next_part()
        final = await controller.submit_next_part()
        assert isinstance(final, UploadResult)
        assert controller.result is final
        assert controller.finished

    @pytest.mark.asyncio
    async def test_session_is_a_copy(self, three_part_transport):
        controller = make_controller(io.BytesIO(b"x" * TOTAL), three_part_transport, TOTAL)
        snapshot = controller.session
        await controller.submit_next_part()
        assert snapshot.offset == 0
        assert controller.session.offset == MIN_CHUNK_SIZE

    @pytest.mark.asyncio
    async def test_unknown_length(self, respond, sent, trickle):
        transport = MagicMock()
        transport.send = AsyncMock(
            side_effect=[respond({"done": False}), respond({"public_id": "big", "bytes": 5})]
        )
        stream = trickle([b"a" * MIN_CHUNK_SIZE, b"b" * 100])
        controller = make_controller(stream, transport)

        await controller.run()

        requests = sent(transport)
        assert requests[0].headers["Content-Range"] == f"bytes 0-{MIN_CHUNK_SIZE - 1}/-1"
        assert requests[1].headers["Content-Range"] == (
            f"bytes {MIN_CHUNK_SIZE}-{MIN_CHUNK_SIZE + 99}/{MIN_CHUNK_SIZE + 100}"
        )

    @pytest.mark.asyncio
    async def test_single_part_degrades(self, mock_transport, sent):
        controller = make_controller(io.BytesIO(b"data"), mock_transport, total_size=4)

        result = await controller.run()

        request = sent(mock_transport)[0]
        assert "Content-Range" not in request.headers
        assert "X-Unique-Upload-Id" not in request.headers
        assert request.file.content == b"data"
        assert result.etag == "etag-1"
        assert mock_transport.send.await_count == 1

    @pytest.mark.asyncio
    async def test_empty_unknown_length_source(self, mock_transport, sent, trickle):
        controller = make_controller(trickle([]), mock_transport)

        result = await controller.run()

        request = sent(mock_transport)[0]
        assert "Content-Range" not in request.headers
        assert "X-Unique-Upload-Id" not in request.headers
        assert request.file.content == b""
        assert result.public_id == "sample"
        assert controller.state == UploadState.DONE
        assert mock_transport.send.await_count == 1


class TestChunkedFailures:
    """Tests for failed sessions."""

    @pytest.mark.asyncio
    async def test_short_part_rejected_before_send(self, mock_transport, trickle):
        controller = make_controller(trickle([b"a" * 100, b"b" * 100]), mock_transport)

        with pytest.raises(PartSizeError):
            await controller.submit_next_part()

        assert controller.state == UploadState.FAILED
        mock_transport.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_server_error_aborts_session(self, respond):
        transport = MagicMock()
        transport.send = AsyncMock(
            side_effect=[
                respond({"done": False}),
                respond({"error": {"message": "Invalid image file"}}, status_code=400),
            ]
        )
        controller = make_controller(io.BytesIO(b"x" * TOTAL), transport, TOTAL)

        with pytest.raises(ServerError) as exc_info:
            await controller.run()

        assert exc_info.value.status == 400
        assert exc_info.value.message == "Invalid image file"
        assert controller.state == UploadState.FAILED
        assert controller.session.offset == MIN_CHUNK_SIZE

        with pytest.raises(CldError):
            await controller.submit_next_part()
        assert transport.send.await_count == 2

    @pytest.mark.asyncio
    async def test_transport_timeout(self):
        transport = MagicMock()
        transport.send = AsyncMock(side_effect=ServerError(499, "Request Timeout"))
        controller = make_controller(io.BytesIO(b"x" * TOTAL), transport, TOTAL)

        with pytest.raises(ServerError) as exc_info:
            await controller.run()

        assert exc_info.value.status == 499
        assert controller.state == UploadState.FAILED

    @pytest.mark.asyncio
    async def test_source_shorter_than_declared(self, respond):
        transport = MagicMock()
        transport.send = AsyncMock(return_value=respond({"done": False}))
        controller = make_controller(
            io.BytesIO(b"x" * MIN_CHUNK_SIZE), transport, total_size=MIN_CHUNK_SIZE * 2
        )

        with pytest.raises(CldError, match="Source ended"):
            await controller.run()
        assert controller.state == UploadState.FAILED

    @pytest.mark.asyncio
    async def test_non_json_response(self):
        transport = MagicMock()
        transport.send = AsyncMock(
            return_value=TransportResponse(status_code=502, content=b"Bad Gateway")
        )
        controller = make_controller(io.BytesIO(b"x" * TOTAL), transport, TOTAL)

        with pytest.raises(ServerError) as exc_info:
            await controller.submit_next_part()
        assert exc_info.value.status == 502
        assert exc_info.value.message == "Bad Gateway"
