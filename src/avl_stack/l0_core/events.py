from __future__ import annotations

from enum import Enum, IntEnum
import time
from dataclasses import dataclass, field
from typing import Any, Mapping

from .errors import InvalidParameter


class Severity(str, Enum):
    INFO = "info"
    WARN = "warn"


def now_ms() -> int:
    """Steady (monotonic) clock in milliseconds, used to stamp received packets."""
    return time.monotonic_ns() // 1_000_000


class Codec(IntEnum):
    """
    AVL codec variants, valued by the codec id byte carried in the payload.

    The codec fixes the byte widths of the I/O element section:

    ======  ========  ===========  ================  ==============
    codec   id width  count width  generation type   variable group
    ======  ========  ===========  ================  ==============
    C8      1         1            no                no
    C8E     2         2            no                yes
    C16     2         1            yes               no
    ======  ========  ===========  ================  ==============
    """

    C8  = 0x08
    C8E = 0x8E
    C16 = 0x10

    @property
    def id_width(self) -> int:
        return 1 if self is Codec.C8 else 2

    @property
    def count_width(self) -> int:
        return 2 if self is Codec.C8E else 1

    @property
    def has_generation_type(self) -> bool:
        return self is Codec.C16

    @property
    def has_variable_group(self) -> bool:
        return self is Codec.C8E

    @classmethod
    def coerce(cls, value: Any) -> "Codec":
        """
        Convert a caller-supplied codec designation into a ``Codec``.

        Accepts a ``Codec``, the wire id (8, 0x8E, 16) or one of the names
        "8", "8E", "16", "C8", "C8E", "C16" (case-insensitive).

        Raises:
            InvalidParameter: If the value does not name a codec.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                raise InvalidParameter(
                    f"invalid codec id {value!r}", actual=value
                ) from None
        if isinstance(value, str):
            name = value.strip().upper()
            if not name.startswith("C"):
                name = "C" + name
            if name in cls.__members__:
                return cls[name]
        raise InvalidParameter(f"invalid codec {value!r}", actual=value)


class Transport(str, Enum):
    """Outer envelope carrying the codec payload."""

    STREAM   = "stream"    # preamble + length + CRC (TCP)
    DATAGRAM = "datagram"  # length + device header (UDP)

    @classmethod
    def coerce(cls, value: Any) -> "Transport":
        """
        Convert "stream"/"datagram" (or the aliases "tcp"/"udp") into a ``Transport``.

        Raises:
            InvalidParameter: If the value does not name a transport.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            key = {"tcp": "stream", "udp": "datagram"}.get(key, key)
            for member in cls:
                if member.value == key:
                    return member
        raise InvalidParameter(f"invalid transport {value!r}", actual=value)


class Priority(IntEnum):
    LOW   = 0
    HIGH  = 1
    PANIC = 2


class GenerationType(IntEnum):
    """Why a codec 16 record was generated."""
    ON_EXIT     = 0
    ON_ENTRANCE = 1
    ON_BOTH     = 2
    RESERVED    = 3
    HYSTERESIS  = 4
    ON_CHANGE   = 5
    EVENTUAL    = 6
    PERIODICAL  = 7


@dataclass(frozen=True, slots=True)
class DeviceHeader:
    """
    Identification header that precedes the codec payload on the datagram transport.

    Fields:
      - packet_id: 2-byte packet id chosen by the device
      - record_sequence_id: 1-byte AVL packet id, echoed in acknowledgements
      - device_identifier: 15-byte device id rendered as nibble digits
      - declared_payload_length: value of the leading length field
    """
    packet_id: int
    record_sequence_id: int
    device_identifier: str
    declared_payload_length: int


@dataclass(frozen=True, slots=True)
class AvlRecord:
    """
    One decoded telemetry sample.

    longitude/latitude are in degrees, altitude in metres, angle in degrees
    from north and speed in km/h. ``elements`` keeps the wire order of the
    I/O elements. ``generation_type`` is only set for codec 16.
    """
    timestamp: int
    priority: int
    longitude: float
    latitude: float
    altitude: int
    angle: int
    satellite_count: int
    speed: int
    event_element_id: int
    elements: Mapping[int, int]
    generation_type: int | None = None

    def as_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "timestamp": self.timestamp,
            "priority": self.priority,
            "longitude": self.longitude,
            "latitude": self.latitude,
            "altitude": self.altitude,
            "angle": self.angle,
            "satellites": self.satellite_count,
            "speed": self.speed,
            "event_element_id": self.event_element_id,
            "elements": {str(k): v for k, v in self.elements.items()},
        }
        if self.generation_type is not None:
            d["generation_type"] = self.generation_type
        return d


@dataclass(frozen=True, slots=True)
class Anomaly:
    """
    Non-fatal finding on an otherwise well-formed record.

    Example:
      Anomaly(record_index=0, code="GPS_INVALID", message="speed is 0, GPS fix invalid",
              value=0)
    """
    record_index: int
    code: str               # stable programmatic code (e.g., "GPS_INVALID")
    message: str
    value: int
    severity: Severity = Severity.WARN


@dataclass(frozen=True, slots=True)
class DecodeResult:
    records: tuple[AvlRecord, ...]
    device_header: DeviceHeader | None = None
    diagnostics: tuple[Anomaly, ...] = field(default_factory=tuple)

    def as_dict(self) -> dict[str, Any]:
        """JSON-ready view of the result."""
        d: dict[str, Any] = {"records": [r.as_dict() for r in self.records]}
        if self.device_header is not None:
            h = self.device_header
            d["device_header"] = {
                "packet_id": h.packet_id,
                "record_sequence_id": h.record_sequence_id,
                "device_identifier": h.device_identifier,
                "declared_payload_length": h.declared_payload_length,
            }
        if self.diagnostics:
            d["diagnostics"] = [
                {"record": a.record_index, "code": a.code, "message": a.message,
                 "value": a.value, "severity": a.severity.value}
                for a in self.diagnostics
            ]
        return d


@dataclass(frozen=True, slots=True)
class DecodedPacket:
    """A decode result stamped with the monotonic time the frame completed."""
    received_millis: int
    codec: Codec
    transport: Transport
    result: DecodeResult
