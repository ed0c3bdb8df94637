"""Conversion of Outlook .msg payloads into JSON text."""

import asyncio
from collections.abc import Callable
from concurrent.futures import Executor

import extract_msg

from msgjson.core.errors import Rejection, RejectionError
from msgjson.core.logger import LogIcon, logger
from msgjson.models.core import EMPTY_DOCUMENT

Converter = Callable[[bytes], str]


class ConversionError(Exception):
    """The payload could not be parsed as an Outlook message."""


def msg_to_json(data: bytes) -> str:
    """Parse raw .msg bytes and flush the message as a JSON string.

    Module level so it can be pickled into the converter process pool.
    """
    try:
        msg = extract_msg.openMsg(data)
    except Exception as ex:
        raise ConversionError(f"problem opening the msg file: {ex}") from ex

    try:
        to_json = getattr(msg, "getJson", None)
        if to_json is None:
            raise ConversionError(f"unsupported msg class: {type(msg).__name__}")
        return to_json()
    except ConversionError:
        raise
    except Exception as ex:
        raise ConversionError(f"problem converting the msg file: {ex}") from ex
    finally:
        msg.close()


async def convert_document(
    payload: bytes | None,
    converter: Converter = msg_to_json,
    executor: Executor | None = None,
) -> str:
    """Turn the document payload into JSON text.

    No payload yields ``"{}"`` without calling the converter. Converter failures
    become ``UNPROCESSABLE_DOCUMENT``. Work runs on ``executor`` when given,
    otherwise on a worker thread.
    """
    if payload is None:
        logger.info("No document supplied", icon=LogIcon.JSON)
        return EMPTY_DOCUMENT

    logger.info("Running read_email", icon=LogIcon.PROCESSOR, size=len(payload))
    try:
        if executor is not None:
            loop = asyncio.get_running_loop()
            json_string = await loop.run_in_executor(executor, converter, payload)
        else:
            json_string = await asyncio.to_thread(converter, payload)
    except ConversionError as ex:
        logger.error("Document conversion failed", icon=LogIcon.ERROR, error=str(ex))
        raise RejectionError(Rejection.UNPROCESSABLE_DOCUMENT, str(ex)) from ex

    logger.info("Document converted", icon=LogIcon.SUCCESS, size=len(json_string))
    return json_string
