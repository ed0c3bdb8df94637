"""Rejection taxonomy and the mapping of rejections to HTTP responses."""

from enum import StrEnum
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from msgjson.core.logger import LogIcon, logger


class Rejection(StrEnum):
    """Reasons a request cannot be served."""

    NOT_FOUND = "not_found"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    INVALID_HEADER = "invalid_header"
    UNPROCESSABLE_DOCUMENT = "unprocessable_document"
    UNCLASSIFIED = "unclassified"


class RejectionError(Exception):
    """Raised anywhere in the pipeline to abort the request with a rejection.

    ``detail`` is for logs only, it never reaches the response body.
    """

    def __init__(self, rejection: Rejection, detail: str = "") -> None:
        super().__init__(detail or rejection.value)
        self.rejection = rejection
        self.detail = detail


REJECTION_TABLE: dict[Rejection, tuple[int, str]] = {
    Rejection.NOT_FOUND: (HTTPStatus.NOT_FOUND, "Not Found"),
    Rejection.PAYLOAD_TOO_LARGE: (HTTPStatus.BAD_REQUEST, "Payload too large"),
    Rejection.INVALID_HEADER: (HTTPStatus.BAD_REQUEST, "{}"),
    Rejection.UNPROCESSABLE_DOCUMENT: (HTTPStatus.UNPROCESSABLE_ENTITY, "Unprocessable Entity"),
    Rejection.UNCLASSIFIED: (HTTPStatus.INTERNAL_SERVER_ERROR, "Internal Server Error"),
}

# Routing misses: unknown path, or a known path with a method it does not serve
ROUTING_MISSES = frozenset({HTTPStatus.NOT_FOUND, HTTPStatus.METHOD_NOT_ALLOWED})


def map_rejection(rejection: Rejection | None) -> tuple[int, str]:
    """Map a rejection to (status code, body). Unknown or missing rejections are 500."""
    return REJECTION_TABLE.get(rejection, REJECTION_TABLE[Rejection.UNCLASSIFIED])  # type: ignore[arg-type]


def rejection_response(rejection: Rejection | None) -> Response:
    status_code, body = map_rejection(rejection)
    return PlainTextResponse(body, status_code=status_code)


async def handle_rejection(request: Request, exc: RejectionError) -> Response:
    logger.warning(
        "Request rejected",
        icon=LogIcon.FORBIDDEN,
        path=request.url.path,
        rejection=exc.rejection.value,
        detail=exc.detail,
    )
    return rejection_response(exc.rejection)


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> Response:
    """Answer framework-level HTTP errors from the rejection table.

    The router raises these for unmatched paths (404) and unsupported methods
    (405); both are reported as ``NOT_FOUND``.
    """
    rejection = Rejection.NOT_FOUND if exc.status_code in ROUTING_MISSES else Rejection.UNCLASSIFIED
    logger.info(
        "No route for request",
        icon=LogIcon.NETWORK,
        method=request.method,
        path=request.url.path,
        status=exc.status_code,
    )
    return rejection_response(rejection)


def register_error_handlers(app: FastAPI) -> None:
    """Route every rejection and routing miss through ``rejection_response``."""
    app.add_exception_handler(RejectionError, handle_rejection)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)  # type: ignore[arg-type]
