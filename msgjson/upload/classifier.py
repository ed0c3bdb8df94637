"""Accept or reject multipart sections by field name and content-type label."""

from msgjson.core.errors import Rejection, RejectionError
from msgjson.core.logger import LogIcon, logger
from msgjson.models.core import DOCUMENT_FIELD, DocumentContentType, PartVerdict

ACCEPTED_CONTENT_TYPES: frozenset[str] = frozenset(DocumentContentType)


def classify_part(name: str, content_type: str | None, filename: str | None = None) -> PartVerdict:
    """Decide whether a part carries the document.

    Parts not named ``msg`` are logged and ignored. A ``msg`` part must declare
    one of the accepted content types; anything else, including no content type
    at all, raises ``RejectionError(INVALID_HEADER)`` and aborts the request.
    """
    logger.info(
        "Received part",
        icon=LogIcon.UPLOAD,
        part=name,
        upload_filename=filename,
        content_type=content_type,
    )

    if name != DOCUMENT_FIELD:
        return PartVerdict.IGNORED

    match content_type:
        case None:
            logger.warning("Document content type could not be determined", icon=LogIcon.FORBIDDEN)
            raise RejectionError(Rejection.INVALID_HEADER, "missing content type on document part")
        case DocumentContentType.OUTLOOK:
            logger.info("Outlook message file found", icon=LogIcon.DETECTION)
        case DocumentContentType.OCTET_STREAM:
            logger.info("Possible outlook message file found", icon=LogIcon.DETECTION)
        case _:
            logger.warning("Invalid document content type", icon=LogIcon.FORBIDDEN, content_type=content_type)
            raise RejectionError(Rejection.INVALID_HEADER, f"invalid content type: {content_type}")

    return PartVerdict.DOCUMENT
