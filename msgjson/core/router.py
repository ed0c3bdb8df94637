"""Router that decodes multipart uploads into handler parameters."""

import inspect
from collections.abc import Callable
from typing import Any

from fastapi import APIRouter, Request
from starlette.requests import ClientDisconnect

from msgjson.core.errors import Rejection, RejectionError
from msgjson.core.logger import LogIcon, logger
from msgjson.core.settings import settings as st
from msgjson.models.core import DOCUMENT_FIELD, UploadRequest
from msgjson.upload.classifier import ACCEPTED_CONTENT_TYPES
from msgjson.upload.multipart import decode_upload

UPLOAD_ENDPOINTS: set[str] = set()

# Documents the raw multipart body that the handler reads itself
UPLOAD_REQUEST_BODY = {
    "content": {
        "multipart/form-data": {
            "schema": {
                "type": "object",
                "properties": {
                    DOCUMENT_FIELD: {
                        "type": "string",
                        "format": "binary",
                        "description": "Outlook message (.msg) to convert",
                    }
                },
            },
            "encoding": {DOCUMENT_FIELD: {"contentType": ", ".join(sorted(ACCEPTED_CONTENT_TYPES))}},
        }
    },
    "required": True,
}


def parse_endpoint_signature(sig: inspect.Signature) -> set[str]:
    """Collect the parameters annotated as ``UploadRequest``."""
    return {name for name, param in sig.parameters.items() if param.annotation is UploadRequest}


async def parse_request_upload(
    upload_params: set[str],
    request: Request,
    kwargs: dict[str, Any],
    max_length: int,
) -> None:
    """Decode the multipart body once and hand it to every upload parameter."""
    if not upload_params:
        return

    try:
        upload = await decode_upload(request.stream(), request.headers.get("content-type"), max_length)
    except ClientDisconnect as ex:
        logger.error("Client disconnected during upload", icon=LogIcon.ERROR)
        raise RejectionError(Rejection.UNCLASSIFIED, "client disconnected mid-body") from ex

    for param_name in upload_params:
        kwargs[param_name] = upload


def wrap_handler(handler: Callable, max_length: int | None = None) -> Callable:
    """Wrap an endpoint so uploads are decoded and any failure leaves as a ``RejectionError``."""
    sig = inspect.signature(handler)
    upload_params = parse_endpoint_signature(sig)
    has_request_param = "request" in sig.parameters

    async def wrapped_handler(request: Request, **h_kwargs):
        try:
            await parse_request_upload(upload_params, request, h_kwargs, max_length or st.MAX_UPLOAD_SIZE)

            # Pass request to handler only if it declared it
            if has_request_param:
                h_kwargs["request"] = request

            return await handler(**h_kwargs)
        except RejectionError:
            raise
        except Exception as ex:
            logger.exception("Unhandled error", icon=LogIcon.CRITICAL)
            raise RejectionError(Rejection.UNCLASSIFIED, repr(ex)) from ex

    # Build signature: request first so FastAPI injects it, upload params resolved here
    new_params = [inspect.Parameter("request", inspect.Parameter.POSITIONAL_OR_KEYWORD, annotation=Request)]
    for name, param in sig.parameters.items():
        if name == "request" or name in upload_params:
            continue
        new_params.append(param)

    wrapped_handler.__signature__ = sig.replace(parameters=new_params)  # type: ignore[attr-defined]
    wrapped_handler.__name__ = handler.__name__
    wrapped_handler.__qualname__ = handler.__qualname__
    wrapped_handler.__doc__ = handler.__doc__
    return wrapped_handler


class Router(APIRouter):
    """APIRouter whose endpoints take decoded uploads and fail through the rejection table."""

    def add_api_route(self, path: str, endpoint: Callable[..., Any], **kwargs: Any) -> None:
        if parse_endpoint_signature(inspect.signature(endpoint)):
            UPLOAD_ENDPOINTS.add(f"{self.prefix}{path}")
            kwargs.setdefault("openapi_extra", {"requestBody": UPLOAD_REQUEST_BODY})
        super().add_api_route(path, wrap_handler(endpoint), **kwargs)
