"""Decode a multipart/form-data body stream into an ordered ``UploadRequest``."""

from collections.abc import AsyncIterable

import python_multipart
from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartState, parse_options_header

from msgjson.core.errors import Rejection, RejectionError
from msgjson.core.logger import LogIcon, logger
from msgjson.models.core import Part, UploadRequest

FORM_DATA = b"multipart/form-data"


def _safe_decode(src: bytes, codec: str) -> str:
    try:
        return src.decode(codec)
    except (UnicodeDecodeError, LookupError):
        return src.decode("latin-1")


class PartCollector:
    """python-multipart callbacks that gather headers and data chunks per part."""

    def __init__(self, charset: str = "utf-8") -> None:
        self.charset = charset
        self.parts: list[Part] = []
        self._header_field = bytearray()
        self._header_value = bytearray()
        self._headers: dict[bytes, bytes] = {}
        self._chunks: list[bytes] = []

    @property
    def callbacks(self) -> dict:
        return {
            "on_part_begin": self.on_part_begin,
            "on_part_data": self.on_part_data,
            "on_part_end": self.on_part_end,
            "on_header_field": self.on_header_field,
            "on_header_value": self.on_header_value,
            "on_header_end": self.on_header_end,
        }

    def on_part_begin(self) -> None:
        self._headers = {}
        self._chunks = []

    def on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field.extend(data[start:end])

    def on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value.extend(data[start:end])

    def on_header_end(self) -> None:
        self._headers[bytes(self._header_field).strip().lower()] = bytes(self._header_value)
        self._header_field.clear()
        self._header_value.clear()

    def on_part_data(self, data: bytes, start: int, end: int) -> None:
        self._chunks.append(data[start:end])

    def on_part_end(self) -> None:
        disposition = self._headers.get(b"content-disposition")
        if disposition is None:
            raise RejectionError(Rejection.UNCLASSIFIED, "part without content-disposition header")

        _, options = parse_options_header(disposition)
        if b"name" not in options:
            raise RejectionError(Rejection.UNCLASSIFIED, "part without a field name")

        filename = options.get(b"filename")
        content_type = self._headers.get(b"content-type")
        self.parts.append(
            Part(
                name=_safe_decode(options[b"name"], self.charset),
                chunks=self._chunks,
                filename=_safe_decode(filename, self.charset) if filename is not None else None,
                content_type=content_type.decode("latin-1").strip() if content_type is not None else None,
            )
        )
        self._chunks = []


def form_boundary(content_type: str | None) -> tuple[bytes, str]:
    """Validate the request's Content-Type and return (boundary, charset).

    A missing header is an unclassified failure. A header that is present but
    is not multipart/form-data, or carries no boundary, is ``INVALID_HEADER``.
    """
    if content_type is None:
        raise RejectionError(Rejection.UNCLASSIFIED, "request content type missing")

    media_type, params = parse_options_header(content_type)
    if media_type.lower() != FORM_DATA:
        raise RejectionError(Rejection.INVALID_HEADER, f"unexpected request content type: {content_type}")
    boundary = params.get(b"boundary")
    if not boundary:
        raise RejectionError(Rejection.INVALID_HEADER, "multipart boundary missing")

    return boundary, _safe_decode(params.get(b"charset", b"utf-8"), "latin-1")


async def decode_upload(
    stream: AsyncIterable[bytes],
    content_type: str | None,
    max_length: int,
) -> UploadRequest:
    """Parse the request body into parts, in order of appearance.

    The body is fed to the parser chunk by chunk as it arrives. Going past
    ``max_length`` raises ``PAYLOAD_TOO_LARGE`` without reading the rest. A body
    that is malformed or stops before the closing boundary is ``UNCLASSIFIED``.
    An empty body decodes to an upload with no parts.
    """
    boundary, charset = form_boundary(content_type)

    collector = PartCollector(charset=charset)
    parser = python_multipart.MultipartParser(boundary, collector.callbacks)
    received = 0
    try:
        async for chunk in stream:
            if not chunk:
                continue
            received += len(chunk)
            if received > max_length:
                raise RejectionError(Rejection.PAYLOAD_TOO_LARGE, f"body exceeds {max_length} bytes")
            parser.write(chunk)
    except MultipartParseError as ex:
        logger.error("Form error", icon=LogIcon.ERROR, error=str(ex))
        raise RejectionError(Rejection.UNCLASSIFIED, f"malformed multipart body: {ex}") from ex

    if received == 0:
        return UploadRequest()

    parser.finalize()
    if parser.state != MultipartState.END:
        raise RejectionError(Rejection.UNCLASSIFIED, "multipart body ended before the closing boundary")

    logger.info("Form decoded", icon=LogIcon.PROCESSING, parts=len(collector.parts), size=received)
    return UploadRequest(collector.parts)
