"""Upload pipeline: classify parts, buffer the document, convert, respond."""

from concurrent.futures import Executor

from fastapi.responses import Response

from msgjson.core.logger import LogIcon, logger
from msgjson.models.core import PartVerdict, UploadRequest
from msgjson.services.converter import Converter, convert_document, msg_to_json
from msgjson.upload.accumulator import accumulate
from msgjson.upload.classifier import classify_part

JSON_MEDIA_TYPE = "application/json"


async def extract_document(upload: UploadRequest) -> bytes | None:
    """Return the buffered ``msg`` payload, or None when no such part was sent.

    Parts are handled in order and the first invalid ``msg`` part aborts the
    request. With several valid ``msg`` parts the last one wins.
    """
    payload: bytes | None = None
    for part in upload:
        if classify_part(part.name, part.content_type, part.filename) is PartVerdict.DOCUMENT:
            payload = await accumulate(part)
    return payload


async def process_upload(
    upload: UploadRequest,
    converter: Converter = msg_to_json,
    executor: Executor | None = None,
) -> Response:
    logger.info("Running upload_handler", icon=LogIcon.UPLOAD, parts=len(upload))
    payload = await extract_document(upload)
    json_string = await convert_document(payload, converter=converter, executor=executor)
    return Response(content=json_string, media_type=JSON_MEDIA_TYPE)
