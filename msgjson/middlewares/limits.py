"""Request size ceiling enforced before any handler runs."""

from fastapi import Request, Response

from msgjson.core.errors import Rejection, rejection_response
from msgjson.core.logger import LogIcon, logger
from msgjson.core.router import UPLOAD_ENDPOINTS
from msgjson.core.settings import settings as st
from msgjson.middlewares.base import BaseMiddleware


def declared_length(request: Request) -> int | None:
    """Content-Length as sent by the client, None when absent or garbled."""
    raw = request.headers.get("content-length")
    try:
        return int(raw) if raw is not None else None
    except ValueError:
        return None


class PayloadLimitMiddleware(BaseMiddleware):
    """Rejects upload requests whose declared length exceeds ``MAX_UPLOAD_SIZE``.

    Bodies sent without a usable Content-Length are counted by the decoder as
    they stream in.
    """

    def __init__(self, endpoints: frozenset[str] | list[str] | None = None, max_length: int | None = None) -> None:
        super().__init__(endpoints if endpoints is not None else frozenset(UPLOAD_ENDPOINTS))
        self.max_length = max_length or st.MAX_UPLOAD_SIZE

    def before(self, request: Request) -> Request | Response:
        length = declared_length(request)
        if length is not None and length > self.max_length:
            logger.warning(
                "Payload too large",
                icon=LogIcon.FORBIDDEN,
                length=length,
                max_length=self.max_length,
            )
            return rejection_response(Rejection.PAYLOAD_TOO_LARGE)
        return request
