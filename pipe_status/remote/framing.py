"""
Sentinel framing of responses inside free-form output.

A response is written as ``||<json>||`` somewhere in the server's stdout.
Through an interactive SSH shell that frame arrives mixed with prompts,
banners and the echo of the command that was typed, in chunks of arbitrary
size, so the reader scans an accumulating buffer for the first complete
frame and ignores everything around it.

Every ``|`` inside the JSON text is written as the escape ``\\u007c``. JSON
only allows that character inside string literals, where the escape decodes
to the same value, so an encoded payload never contains the delimiter.
"""

from __future__ import annotations

import codecs
import logging
import re
from collections.abc import Iterable

from pydantic import ValidationError

from pipe_status.models import Response, ServerError

logger = logging.getLogger(__name__)

DELIMITER = "||"

# Payload characters: anything but the delimiter character and line breaks.
FRAME_PATTERN = re.compile(r"\|\|([^|\r\n]+)\|\|")


def escape_payload(json_text: str) -> str:
    """Make JSON text safe to place between delimiters."""
    return json_text.replace("|", "\\u007c")


def encode_frame(response: Response) -> str:
    """Serialize ``response`` as a single delimited frame."""
    return f"{DELIMITER}{escape_payload(response.to_json())}{DELIMITER}"


class FrameDecoder:
    """Incremental search for the first frame in a chunked stream.

    Feed chunks as they arrive; ``feed`` returns the frame payload once the
    closing delimiter has been seen and ``None`` until then. Only the part
    of the buffer where a frame could still start is rescanned.
    """

    def __init__(self) -> None:
        self._text = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._scan_from = 0
        self.payload: str | None = None

    @property
    def buffer(self) -> str:
        return self._buffer

    def feed(self, chunk: bytes | str) -> str | None:
        if self.payload is not None:
            return self.payload
        if isinstance(chunk, bytes):
            chunk = self._text.decode(chunk)
        self._buffer += chunk

        match = FRAME_PATTERN.search(self._buffer, self._scan_from)
        if match:
            self.payload = match.group(1)
            return self.payload

        self._scan_from = self._resume_offset()
        return None

    def _resume_offset(self) -> int:
        # An unfinished frame can only begin at the last delimiter, and only
        # if nothing that is forbidden inside a payload follows it.
        start = self._buffer.rfind(DELIMITER, self._scan_from)
        if start != -1:
            tail = self._buffer[start + len(DELIMITER) :]
            if tail.endswith("|"):
                tail = tail[:-1]
            if not any(c in tail for c in "|\r\n"):
                return start
        if self._buffer.endswith("|"):
            return len(self._buffer) - 1
        return len(self._buffer)


def parse_payload(payload: str) -> Response:
    """Turn frame content into a Response, RequestParse if it is not one."""
    try:
        return Response.from_json(payload)
    except ValidationError:
        logger.warning("Frame payload is not a response: %.200s", payload)
        return Response.fail(ServerError.REQUEST_PARSE)


def decode_response(chunks: Iterable[bytes | str]) -> Response:
    """Read chunks until the first frame and decode it.

    The iterable ends at end-of-stream. It may raise ``TimeoutError`` when
    its read deadline expires or ``OSError`` when the read fails; both are
    reported as data, never raised.

    Returns:
        The framed Response; ``RequestParse`` if the stream ended without a
        frame, ``Timeout`` or ``Transport`` if reading was cut short.
    """
    decoder = FrameDecoder()
    try:
        for chunk in chunks:
            payload = decoder.feed(chunk)
            if payload is not None:
                return parse_payload(payload)
    except TimeoutError:
        logger.warning("No response frame before the read deadline")
        return Response.fail(ServerError.TIMEOUT)
    except OSError as e:
        logger.warning("Reading response failed: %s", e)
        return Response.fail(ServerError.TRANSPORT)

    logger.debug("Stream ended without a frame: %.500r", decoder.buffer)
    return Response.fail(ServerError.REQUEST_PARSE)
