"""Core models for multipart upload handling."""

from collections.abc import AsyncIterator, Iterator, Sequence
from enum import StrEnum

DOCUMENT_FIELD = "msg"
EMPTY_DOCUMENT = "{}"


class DocumentContentType(StrEnum):
    """Content-type labels accepted on the document part."""

    OUTLOOK = "application/vnd.ms-outlook"
    OCTET_STREAM = "application/octet-stream"


class PartVerdict(StrEnum):
    """Classification result for a multipart section."""

    DOCUMENT = "document"
    IGNORED = "ignored"


class PartConsumedError(RuntimeError):
    """Raised when a part's stream is read a second time."""


class Part:
    """One multipart section. Its byte stream can be consumed exactly once."""

    __slots__ = ("name", "filename", "content_type", "_chunks", "_consumed")

    def __init__(
        self,
        name: str,
        chunks: Sequence[bytes] = (),
        filename: str | None = None,
        content_type: str | None = None,
    ) -> None:
        self.name = name
        self.filename = filename
        self.content_type = content_type
        self._chunks = list(chunks)
        self._consumed = False

    def __repr__(self) -> str:
        return f"Part(name={self.name!r}, filename={self.filename!r}, content_type={self.content_type!r})"

    @property
    def consumed(self) -> bool:
        return self._consumed

    def stream(self) -> AsyncIterator[bytes]:
        """Hand out the part's chunks; the part keeps no reference afterwards."""
        if self._consumed:
            raise PartConsumedError(f"part '{self.name}' has already been read")
        self._consumed = True
        chunks, self._chunks = self._chunks, []
        return _iter_chunks(chunks)


async def _iter_chunks(chunks: list[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


class UploadRequest:
    """Decoded multipart/form-data body: parts in the order they were sent."""

    __slots__ = ("parts",)

    def __init__(self, parts: list[Part] | None = None) -> None:
        self.parts = parts or []

    def __bool__(self) -> bool:
        return bool(self.parts)

    def __len__(self) -> int:
        return len(self.parts)

    def __iter__(self) -> Iterator[Part]:
        return iter(self.parts)
