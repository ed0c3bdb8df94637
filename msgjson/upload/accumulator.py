"""Drain a part's byte stream into one contiguous buffer."""

from msgjson.core.errors import Rejection, RejectionError
from msgjson.core.logger import LogIcon, logger
from msgjson.models.core import Part


async def accumulate(part: Part) -> bytes:
    """Read the part to completion. I/O failures discard the partial buffer."""
    buffer = bytearray()
    try:
        async for chunk in part.stream():
            buffer.extend(chunk)
    except OSError as ex:
        logger.error("Reading file error", icon=LogIcon.ERROR, part=part.name, error=str(ex))
        raise RejectionError(Rejection.UNCLASSIFIED, f"stream read failed: {ex}") from ex

    logger.info("Document buffered", icon=LogIcon.FILE, part=part.name, size=len(buffer))
    return bytes(buffer)
