"""Tests for multipart/form-data decoding."""

import pytest
from conftest import BOUNDARY, FORM_CONTENT_TYPE, FormField, body_stream, build_multipart

from msgjson.core.errors import Rejection, RejectionError
from msgjson.models.core import UploadRequest
from msgjson.upload.accumulator import accumulate
from msgjson.upload.multipart import decode_upload, form_boundary

MAX_LENGTH = 1024 * 1024


async def _decode(body: bytes, content_type: str | None = FORM_CONTENT_TYPE, **kwargs) -> UploadRequest:
    chunk_size = kwargs.pop("chunk_size", 1024)
    return await decode_upload(body_stream(body, chunk_size), content_type, kwargs.pop("max_length", MAX_LENGTH))


async def _rejection(body: bytes, content_type: str | None = FORM_CONTENT_TYPE, **kwargs) -> Rejection:
    with pytest.raises(RejectionError) as exc_info:
        await _decode(body, content_type, **kwargs)
    return exc_info.value.rejection


class TestFormBoundary:
    """Tests for request content-type validation."""

    def test_boundary_and_charset(self) -> None:
        assert form_boundary(FORM_CONTENT_TYPE) == (BOUNDARY.encode(), "utf-8")
        assert form_boundary("multipart/form-data; boundary=b; charset=latin-1") == (b"b", "latin-1")

    def test_media_type_casing_ignored(self) -> None:
        assert form_boundary(f"Multipart/Form-Data; boundary={BOUNDARY}")[0] == BOUNDARY.encode()

    @pytest.mark.parametrize("content_type", ["application/json", "text/plain", "multipart/mixed; boundary=x", ""])
    def test_not_multipart_form(self, content_type: str) -> None:
        with pytest.raises(RejectionError) as exc_info:
            form_boundary(content_type)
        assert exc_info.value.rejection is Rejection.INVALID_HEADER

    def test_missing_boundary(self) -> None:
        with pytest.raises(RejectionError) as exc_info:
            form_boundary("multipart/form-data")
        assert exc_info.value.rejection is Rejection.INVALID_HEADER

    def test_missing_header(self) -> None:
        with pytest.raises(RejectionError) as exc_info:
            form_boundary(None)
        assert exc_info.value.rejection is Rejection.UNCLASSIFIED


class TestDecodeUpload:
    """Tests for decode_upload."""

    async def test_part_attributes(self) -> None:
        body = build_multipart(
            [FormField("msg", b"payload", "application/vnd.ms-outlook", "mail.msg")]
        )

        upload = await _decode(body)

        assert isinstance(upload, UploadRequest)
        assert len(upload) == 1
        part = upload.parts[0]
        assert part.name == "msg"
        assert part.filename == "mail.msg"
        assert part.content_type == "application/vnd.ms-outlook"

    async def test_parts_keep_order(self) -> None:
        body = build_multipart(
            [
                FormField("first", b"1"),
                FormField("msg", b"2", "application/octet-stream"),
                FormField("last", b"3", "text/plain"),
            ]
        )

        upload = await _decode(body)

        assert [part.name for part in upload] == ["first", "msg", "last"]

    async def test_missing_optional_headers(self) -> None:
        part = (await _decode(build_multipart([FormField("note", b"hello")]))).parts[0]

        assert part.filename is None
        assert part.content_type is None

    async def test_payload_bytes_survive(self) -> None:
        data = bytes(range(256)) * 4 + b"\r\n--not-the-boundary\r\n"
        body = build_multipart([FormField("msg", data, "application/octet-stream")])

        part = (await _decode(body)).parts[0]

        assert await accumulate(part) == data

    @pytest.mark.parametrize("chunk_size", [1, 7, 64 * 1024])
    async def test_chunking_does_not_matter(self, chunk_size: int) -> None:
        data = b"\xd0\xcf\x11\xe0" * 4096
        body = build_multipart([FormField("msg", data, "application/octet-stream")])

        part = (await _decode(body, chunk_size=chunk_size)).parts[0]

        assert await accumulate(part) == data

    async def test_empty_body_has_no_parts(self) -> None:
        assert not await _decode(b"")

    async def test_closing_delimiter_only_has_no_parts(self) -> None:
        assert not await _decode(build_multipart([]))


class TestDecodeUploadRejections:
    """Tests for decode_upload failure modes."""

    async def test_body_over_ceiling(self) -> None:
        body = build_multipart([FormField("msg", b"x" * 200, "application/octet-stream")])
        assert await _rejection(body, max_length=100) is Rejection.PAYLOAD_TOO_LARGE

    async def test_ceiling_stops_reading(self) -> None:
        head = (
            f"--{BOUNDARY}\r\n"
            'Content-Disposition: form-data; name="msg"\r\n'
            "Content-Type: application/octet-stream\r\n\r\n"
        ).encode()
        consumed = []

        async def endless():
            yield head
            while True:
                consumed.append(1)
                yield b"x" * 64

        with pytest.raises(RejectionError) as exc_info:
            await decode_upload(endless(), FORM_CONTENT_TYPE, 1024)

        assert exc_info.value.rejection is Rejection.PAYLOAD_TOO_LARGE
        assert len(consumed) == (1024 - len(head)) // 64 + 1

    async def test_body_at_ceiling_accepted(self) -> None:
        body = build_multipart([FormField("msg", b"x" * 200, "application/octet-stream")])
        assert len(await _decode(body, max_length=len(body))) == 1

    @pytest.mark.parametrize("content_type", ["application/json", "text/plain"])
    async def test_not_multipart(self, content_type: str) -> None:
        body = build_multipart([FormField("msg", b"x", "application/octet-stream")])
        assert await _rejection(body, content_type) is Rejection.INVALID_HEADER

    async def test_missing_boundary(self) -> None:
        body = build_multipart([FormField("msg", b"x", "application/octet-stream")])
        assert await _rejection(body, "multipart/form-data") is Rejection.INVALID_HEADER

    async def test_missing_content_type(self) -> None:
        body = build_multipart([FormField("msg", b"x", "application/octet-stream")])
        assert await _rejection(body, None) is Rejection.UNCLASSIFIED

    async def test_garbage_body(self) -> None:
        assert await _rejection(b"this is not a multipart body at all") is Rejection.UNCLASSIFIED

    async def test_truncated_body(self) -> None:
        body = build_multipart([FormField("msg", b"x" * 100, "application/octet-stream")])
        closing = f"\r\n--{BOUNDARY}--\r\n".encode()
        assert await _rejection(body[: -len(closing)]) is Rejection.UNCLASSIFIED

    async def test_part_without_disposition(self) -> None:
        body = (
            f"--{BOUNDARY}\r\n"
            "Content-Type: application/octet-stream\r\n"
            "\r\n"
            "data\r\n"
            f"--{BOUNDARY}--\r\n"
        ).encode()
        assert await _rejection(body) is Rejection.UNCLASSIFIED
