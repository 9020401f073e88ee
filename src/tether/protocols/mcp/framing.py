"""Newline-delimited JSON framing for the stdio transport."""

from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


def encode_message(message: dict[str, Any]) -> bytes:
    """Serialise one message as a single UTF-8 line."""
    return (json.dumps(message, ensure_ascii=False, separators=(",", ":")) + "\n").encode()


class LineFramer:
    """Accumulates raw stdout bytes and yields complete JSON objects.

    Buffering happens on bytes, so a chunk boundary may fall anywhere,
    including inside a multi-byte character. Lines that are blank, not
    valid JSON, or not a JSON object are dropped.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    @property
    def pending(self) -> bytes:
        """Bytes received after the last newline."""
        return bytes(self._buffer)

    def feed(self, data: bytes) -> list[dict[str, Any]]:
        """Append *data* and return every message completed by it."""
        self._buffer.extend(data)
        messages: list[dict[str, Any]] = []
        while True:
            newline = self._buffer.find(b"\n")
            if newline < 0:
                break
            line = bytes(self._buffer[:newline])
            del self._buffer[: newline + 1]
            message = self._parse(line)
            if message is not None:
                messages.append(message)
        return messages

    @staticmethod
    def _parse(line: bytes) -> dict[str, Any] | None:
        stripped = line.strip()
        if not stripped:
            return None
        try:
            parsed = json.loads(stripped.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            logger.debug("Discarding malformed frame: %r", stripped[:200])
            return None
        if not isinstance(parsed, dict):
            logger.debug("Discarding non-object frame: %r", stripped[:200])
            return None
        return parsed
