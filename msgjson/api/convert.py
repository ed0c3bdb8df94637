"""Outlook .msg to JSON conversion endpoint."""

from concurrent.futures import Executor
from typing import Annotated

from fastapi import Depends, Request
from fastapi.responses import Response

from msgjson.core.lifespan import request_resources
from msgjson.core.router import Router
from msgjson.models.core import UploadRequest
from msgjson.services.converter import Converter, msg_to_json
from msgjson.upload.handler import process_upload

router = Router(prefix="/api", tags=["Conversion"])

CONVERT_PATH = "/msg_to_json"


def get_converter() -> Converter:
    """The .msg parser collaborator."""
    return msg_to_json


def converter_pool(request: Request) -> Executor | None:
    """Process pool started by the lifespan, if the app is running with one."""
    resources = request_resources(request)
    return resources.get("process_pool") if resources is not None else None


@router.post(CONVERT_PATH, response_class=Response)
async def convert_msg(
    upload: UploadRequest,
    converter: Annotated[Converter, Depends(get_converter)],
    executor: Annotated[Executor | None, Depends(converter_pool)],
) -> Response:
    """Convert the uploaded ``msg`` part to JSON, ``{}`` when none was sent."""
    return await process_upload(upload, converter=converter, executor=executor)
