"""
errors.py
=========
Decode failures raised by the AVL decoder.

Every failure aborts the whole decode; no partial result is returned.
All kinds derive from ``DecodeError`` (a ``ValueError``) and carry the
offset and expected/actual values needed to report the fault precisely.
"""

from __future__ import annotations

from typing import Any, Optional


class DecodeError(ValueError):
    """
    Base class for every decode failure.

    Attributes:
        offset: Byte offset in the input buffer where the fault was found.
        expected: Value the decoder required (if any).
        actual: Value actually present (if any).
    """

    def __init__(self, message: str, *, offset: Optional[int] = None,
                 expected: Any = None, actual: Any = None) -> None:
        self.message = message
        self.offset = offset
        self.expected = expected
        self.actual = actual
        super().__init__(self._format())

    def _format(self) -> str:
        parts = [self.message]
        if self.offset is not None:
            parts.append(f"offset={self.offset}")
        if self.expected is not None:
            parts.append(f"expected={self.expected!r}")
        if self.actual is not None:
            parts.append(f"actual={self.actual!r}")
        return " ".join(parts) if len(parts) == 1 else f"{parts[0]} ({', '.join(parts[1:])})"


class InvalidParameter(DecodeError):
    """Codec or transport argument is not a known member."""


class TooShort(DecodeError):
    """Buffer ends before a mandatory header field."""


class LengthMismatch(DecodeError):
    """Declared length field disagrees with the buffer size."""


class PreambleError(DecodeError):
    """Stream frame does not start with four zero bytes."""


class ChecksumMismatch(DecodeError):
    """CRC-16 of the payload differs from the trailing checksum."""


class UnexpectedMarker(DecodeError):
    """Datagram header marker byte is not 0x01."""


class DeviceIdLengthMismatch(DecodeError):
    """Datagram header device-id length is not 15."""


class CodecMismatch(DecodeError):
    """Payload codec id is unknown or differs from the declared codec."""


class RecordCountMismatch(DecodeError):
    """Leading/trailing record counts disagree or do not fit the payload."""


class _RecordError(DecodeError):
    def __init__(self, message: str, *, record_index: int,
                 offset: Optional[int] = None, expected: Any = None,
                 actual: Any = None) -> None:
        self.record_index = record_index
        super().__init__(f"record {record_index}: {message}",
                         offset=offset, expected=expected, actual=actual)


class ElementCountMismatch(_RecordError):
    """Declared total I/O element count differs from the decoded elements."""


class MalformedRecord(_RecordError):
    """Record slice is truncated or leaves unread bytes."""
