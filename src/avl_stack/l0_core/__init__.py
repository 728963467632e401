"""
avl_stack.l0_core
Foundational Core layer (contracts & value types) for the AVL decoder stack.

Public API:
- now_ms, Severity
- Codec, Transport, Priority, GenerationType
- DeviceHeader, AvlRecord, Anomaly, DecodeResult, DecodedPacket
- DecodeError and its subclasses
"""

from .events import (  # noqa: F401
    now_ms, Severity,
    Codec, Transport, Priority, GenerationType,
    DeviceHeader, AvlRecord, Anomaly, DecodeResult, DecodedPacket,
)
from .errors import (  # noqa: F401
    DecodeError, InvalidParameter, TooShort, LengthMismatch, PreambleError,
    ChecksumMismatch, UnexpectedMarker, DeviceIdLengthMismatch, CodecMismatch,
    RecordCountMismatch, ElementCountMismatch, MalformedRecord,
)

__all__ = [
    "now_ms", "Severity",
    "Codec", "Transport", "Priority", "GenerationType",
    "DeviceHeader", "AvlRecord", "Anomaly", "DecodeResult", "DecodedPacket",
    "DecodeError", "InvalidParameter", "TooShort", "LengthMismatch", "PreambleError",
    "ChecksumMismatch", "UnexpectedMarker", "DeviceIdLengthMismatch", "CodecMismatch",
    "RecordCountMismatch", "ElementCountMismatch", "MalformedRecord",
]
