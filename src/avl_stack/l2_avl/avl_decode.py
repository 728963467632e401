"""
avl_decode.py
=============
RX decoder for AVL tracker packets.

This module focuses ONLY on turning one complete packet into records:
- Validating the transport frame (stream preamble/length/CRC, or the
  datagram length field and device header).
- Splitting the codec payload into record slices and cross-checking the
  leading and trailing record counts.
- Decoding each record's GPS fields and I/O elements.

Design philosophy:
- Pure and synchronous: no I/O, no logging, no shared state.
- Any violated invariant raises a `DecodeError` subclass; no partial result.
- Out-of-range priority, zero speed and out-of-range generation type are
  reported as `Anomaly` entries on the result, never raised.

Usage:
    from avl_stack.l2_avl.avl_decode import decode
    result = decode("8", "stream", frame_bytes)
    for rec in result.records:
        print(rec.timestamp, rec.elements)
"""

from __future__ import annotations

from typing import Any, Optional

from construct import ConstructError

from avl_stack.l0_core.events import (
    Codec, Transport, Priority, GenerationType,
    DeviceHeader, AvlRecord, Anomaly, DecodeResult,
)
from avl_stack.l0_core.errors import (
    TooShort, LengthMismatch, PreambleError, ChecksumMismatch, UnexpectedMarker,
    DeviceIdLengthMismatch, CodecMismatch, RecordCountMismatch,
    ElementCountMismatch, MalformedRecord,
)
from . import avl_protocol as proto


def decode(codec: Any, transport: Any, buffer: bytes) -> DecodeResult:
    """
    Decode one AVL packet.

    Args:
        codec: Declared codec (``Codec`` or a name/id accepted by ``Codec.coerce``).
        transport: Declared transport (``Transport`` or "stream"/"datagram"/"tcp"/"udp").
        buffer: The complete packet, frame header and trailer included.

    Returns:
        DecodeResult: Records in wire order, the device header (datagram only)
        and any anomalies found.

    Raises:
        DecodeError: Any subclass; the packet is rejected as a whole.

    Example:
        >>> frame = bytes.fromhex("000000000000003608010000016B40D8EA30...")
        >>> decode(Codec.C8, Transport.STREAM, frame).records[0].timestamp
        1560161086000
    """
    codec = Codec.coerce(codec)
    transport = Transport.coerce(transport)
    buffer = bytes(buffer)

    payload, payload_offset, header = validate_frame(transport, buffer)
    slices = split_records(codec, payload, payload_offset)

    records: list[AvlRecord] = []
    diagnostics: list[Anomaly] = []
    for index, (offset, raw) in enumerate(slices):
        records.append(decode_record(codec, raw, index, offset, diagnostics))

    declared = payload[1]
    if len(records) != declared:
        raise RecordCountMismatch(
            "decoded record count differs from declared count",
            offset=payload_offset + 1, expected=declared, actual=len(records),
        )

    return DecodeResult(
        records=tuple(records),
        device_header=header,
        diagnostics=tuple(diagnostics),
    )


def decode_hex(codec: Any, transport: Any, text: str) -> DecodeResult:
    """Decode a packet given as a hex string (whitespace is ignored)."""
    return decode(codec, transport, bytes.fromhex("".join(text.split())))


# ============================================================
# Frame validation
# ============================================================

def validate_frame(transport: Transport,
                   buffer: bytes) -> tuple[bytes, int, Optional[DeviceHeader]]:
    """
    Check the transport envelope and return ``(payload, payload_offset, header)``.

    Stream format:
        [00 00 00 00][length u32][payload][crc u32]

    Datagram format:
        [length u16][packet id u16][01][seq u8][00 0F][device id 15B][payload]
    """
    if transport is Transport.STREAM:
        return _validate_stream(buffer)
    return _validate_datagram(buffer)


def _validate_stream(buffer: bytes) -> tuple[bytes, int, None]:
    if len(buffer) < proto.STREAM_MIN_LENGTH:
        raise TooShort("stream frame shorter than its header",
                       offset=0, expected=proto.STREAM_MIN_LENGTH, actual=len(buffer))

    header = proto.StreamHeader.parse(buffer)
    if header.data_length + proto.STREAM_OVERHEAD != len(buffer):
        raise LengthMismatch("declared payload length does not match frame size",
                             offset=4, expected=len(buffer) - proto.STREAM_OVERHEAD,
                             actual=header.data_length)
    if header.preamble != 0:
        raise PreambleError("stream preamble is not zero",
                            offset=0, expected=0, actual=header.preamble)

    end = len(buffer) - proto.STREAM_TRAILER_SIZE
    payload = buffer[proto.STREAM_HEADER_SIZE:end]
    expected_crc = proto.be_uint(buffer[end:])
    actual_crc = proto.crc16_ibm(payload)
    if expected_crc != actual_crc:
        raise ChecksumMismatch("payload CRC-16 does not match trailer",
                               offset=end, expected=expected_crc, actual=actual_crc)
    return payload, proto.STREAM_HEADER_SIZE, None


def _validate_datagram(buffer: bytes) -> tuple[bytes, int, DeviceHeader]:
    if len(buffer) < proto.DATAGRAM_MIN_LENGTH:
        raise TooShort("datagram shorter than its length field",
                       offset=0, expected=proto.DATAGRAM_MIN_LENGTH, actual=len(buffer))

    length = proto.be_uint(buffer[:proto.DATAGRAM_LENGTH_SIZE])
    if length + proto.DATAGRAM_OVERHEAD != len(buffer):
        raise LengthMismatch("declared datagram length does not match buffer size",
                             offset=0, expected=len(buffer) - proto.DATAGRAM_OVERHEAD,
                             actual=length)
    if len(buffer) < proto.DATAGRAM_HEADER_SIZE:
        raise TooShort("datagram shorter than its device header",
                       offset=0, expected=proto.DATAGRAM_HEADER_SIZE, actual=len(buffer))

    header = proto.DatagramHeader.parse(buffer)
    if header.marker != proto.DATAGRAM_MARKER:
        raise UnexpectedMarker("datagram marker byte is not 0x01",
                               offset=4, expected=proto.DATAGRAM_MARKER, actual=header.marker)
    if header.device_id_length != proto.DEVICE_ID_LENGTH:
        raise DeviceIdLengthMismatch("device identifier length is not 15",
                                     offset=6, expected=proto.DEVICE_ID_LENGTH,
                                     actual=header.device_id_length)

    device = DeviceHeader(
        packet_id=header.packet_id,
        record_sequence_id=header.record_sequence_id,
        device_identifier=proto.device_id_digits(header.device_id),
        declared_payload_length=length,
    )
    return buffer[proto.DATAGRAM_HEADER_SIZE:], proto.DATAGRAM_HEADER_SIZE, device


# ============================================================
# Record splitting
# ============================================================

def split_records(codec: Codec, payload: bytes,
                  payload_offset: int = 0) -> list[tuple[int, bytes]]:
    """
    Split a codec payload into equal record slices.

    Format:
        [codec id][N][record * N][N]

    Returns:
        list of ``(buffer_offset, record_bytes)`` in wire order.
    """
    if len(payload) < proto.PAYLOAD_MIN_LENGTH:
        raise TooShort("codec payload shorter than codec id and record counts",
                       offset=payload_offset, expected=proto.PAYLOAD_MIN_LENGTH,
                       actual=len(payload))

    codec_id = payload[0]
    if codec_id != codec.value:
        known = codec_id in {c.value for c in Codec}
        raise CodecMismatch(
            "payload codec id differs from declared codec" if known
            else "payload codec id is not a known codec",
            offset=payload_offset, expected=codec.value, actual=codec_id,
        )

    leading, trailing = payload[1], payload[-1]
    if leading != trailing:
        raise RecordCountMismatch("leading and trailing record counts differ",
                                  offset=payload_offset + len(payload) - 1,
                                  expected=leading, actual=trailing)

    body = payload[2:-1]
    body_offset = payload_offset + 2
    if leading == 0:
        if body:
            raise RecordCountMismatch("record bytes present but record count is 0",
                                      offset=body_offset, expected=0, actual=len(body))
        return []
    size, rest = divmod(len(body), leading)
    if rest or size == 0:
        raise RecordCountMismatch("record bytes do not split evenly by record count",
                                  offset=body_offset, expected=leading, actual=len(body))

    return [(body_offset + i * size, body[i * size:(i + 1) * size])
            for i in range(leading)]


# ============================================================
# Record decoding
# ============================================================

def decode_record(codec: Codec, raw: bytes, index: int = 0, offset: int = 0,
                  diagnostics: Optional[list[Anomaly]] = None) -> AvlRecord:
    """
    Decode one record slice.

    Anomalies are appended to ``diagnostics`` when a list is given.

    Raises:
        MalformedRecord: Slice is truncated or has unread bytes.
        ElementCountMismatch: Declared element total differs from decoded entries.
    """
    try:
        parsed = proto.RECORD_SCHEMAS[codec].parse(raw)
    except ConstructError as exc:
        raise MalformedRecord(f"cannot parse {codec.name} record: {exc}",
                              record_index=index, offset=offset,
                              actual=len(raw)) from exc

    elements = _collect_elements(codec, parsed.io)
    if len(elements) != parsed.io.total:
        raise ElementCountMismatch("declared I/O element total differs from decoded elements",
                                   record_index=index, offset=offset,
                                   expected=parsed.io.total, actual=len(elements))

    gps = parsed.gps
    generation_type = parsed.generation_type if codec.has_generation_type else None

    if diagnostics is not None:
        diagnostics.extend(_check_anomalies(index, parsed.priority, gps.speed, generation_type))

    return AvlRecord(
        timestamp=parsed.timestamp,
        priority=parsed.priority,
        longitude=gps.longitude / proto.COORDINATE_SCALE,
        latitude=gps.latitude / proto.COORDINATE_SCALE,
        altitude=gps.altitude,
        angle=gps.angle,
        satellite_count=gps.satellites,
        speed=gps.speed,
        event_element_id=parsed.event_id,
        elements=elements,
        generation_type=generation_type,
    )


def _collect_elements(codec: Codec, io) -> dict[int, int]:
    elements: dict[int, int] = {}
    for width in proto.FIXED_VALUE_WIDTHS:
        for item in io[f"n{width}"]:
            elements[item.id] = item.value
    if codec.has_variable_group:
        for item in io.nx:
            elements[item.id] = proto.be_uint(item.value)
    return elements


def _check_anomalies(index: int, priority: int, speed: int,
                     generation_type: Optional[int]) -> list[Anomaly]:
    found: list[Anomaly] = []
    if priority > max(Priority):
        found.append(Anomaly(index, "INVALID_PRIORITY",
                             f"priority {priority} is not low/high/panic", priority))
    if speed == 0:
        found.append(Anomaly(index, "GPS_INVALID", "speed is 0, GPS fix invalid", speed))
    if generation_type is not None and generation_type > max(GenerationType):
        found.append(Anomaly(index, "INVALID_GENERATION_TYPE",
                             f"generation type {generation_type} is out of range",
                             generation_type))
    return found
