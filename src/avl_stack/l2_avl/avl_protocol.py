"""
avl_protocol.py
===============
Central definitions of the AVL tracker wire protocol (codec 8, 8 Extended, 16).

This file is the single source of truth for:
- Frame constants of the stream (TCP) and datagram (UDP) transports.
- Frame header and record schemas (using `construct`).
- Shared byte primitives: big-endian integer read, CRC-16/IBM, device-id digits.

Other modules should import from here:
- avl_decode.py  -> to validate frames and decode records.
- avl_framing.py -> to cut stream frames out of a byte stream.
"""

from construct import (
    Struct, Int8ub, Int16ub, Int32ub, Int64ub, Int32sb, Bytes,
    PrefixedArray, Prefixed, GreedyBytes, Terminated,
)

from avl_stack.l0_core.events import Codec

# ============================================================
# Frame constants
# ============================================================

STREAM_HEADER_SIZE   = 8    # 4-byte zero preamble + 4-byte payload length
STREAM_TRAILER_SIZE  = 4    # CRC, low 16 bits meaningful
STREAM_OVERHEAD      = STREAM_HEADER_SIZE + STREAM_TRAILER_SIZE
STREAM_MIN_LENGTH    = STREAM_HEADER_SIZE

DATAGRAM_LENGTH_SIZE = 2    # the length field does not count itself
DATAGRAM_OVERHEAD    = DATAGRAM_LENGTH_SIZE
DATAGRAM_MIN_LENGTH  = DATAGRAM_LENGTH_SIZE
DATAGRAM_MARKER      = 0x01
DEVICE_ID_LENGTH     = 15
DATAGRAM_HEADER_SIZE = 8 + DEVICE_ID_LENGTH  # 23

PAYLOAD_MIN_LENGTH   = 3    # codec id + record count + trailing record count

# Coordinates are signed fixed point with 7 decimal digits.
COORDINATE_SCALE     = 10_000_000

# Fixed-width I/O value groups, in wire order.
FIXED_VALUE_WIDTHS   = (1, 2, 4, 8)

CRC16_POLY           = 0xA001  # 0x8005 reflected

# ============================================================
# Frame headers
# ============================================================

StreamHeader = Struct(
    "preamble"    / Int32ub,   # must be 0
    "data_length" / Int32ub,   # codec payload length
)
"""Construct schema for the 8-byte stream transport header."""

DatagramHeader = Struct(
    "length"             / Int16ub,   # bytes following this field
    "packet_id"          / Int16ub,
    "marker"             / Int8ub,    # always 0x01
    "record_sequence_id" / Int8ub,    # AVL packet id
    "device_id_length"   / Int16ub,   # always 15
    "device_id"          / Bytes(DEVICE_ID_LENGTH),
)
"""Construct schema for the 23-byte datagram transport header."""

# ============================================================
# Record schemas
# ============================================================

_UINT = {1: Int8ub, 2: Int16ub, 4: Int32ub, 8: Int64ub}

# Longitude/latitude are two's complement; Int32sb performs the sign conversion.
GpsElement = Struct(
    "longitude"  / Int32sb,
    "latitude"   / Int32sb,
    "altitude"   / Int16ub,   # metres
    "angle"      / Int16ub,   # degrees from north
    "satellites" / Int8ub,
    "speed"      / Int16ub,   # km/h, 0 when the fix is invalid
)
"""Construct schema for the 15-byte GPS element."""

VariableElement = Struct(
    "id"    / Int16ub,
    "value" / Prefixed(Int16ub, GreedyBytes),
)
"""Construct schema for one codec 8 Extended variable-length I/O element."""


def _element_group(count_t, id_t, value_t):
    return PrefixedArray(count_t, Struct("id" / id_t, "value" / value_t))


def io_element_schema(codec: Codec) -> Struct:
    """
    Build the I/O element section schema for a codec.

    Layout:
        [total][N1][(id, u8) * N1][N2][(id, u16) * N2]
               [N4][(id, u32) * N4][N8][(id, u64) * N8]
               ([NX][(id, len, value[len]) * NX]   codec 8 Extended only)
    """
    id_t = _UINT[codec.id_width]
    count_t = _UINT[codec.count_width]
    fields = ["total" / count_t]
    for width in FIXED_VALUE_WIDTHS:
        fields.append(f"n{width}" / _element_group(count_t, id_t, _UINT[width]))
    if codec.has_variable_group:
        fields.append("nx" / PrefixedArray(Int16ub, VariableElement))
    return Struct(*fields)


def record_schema(codec: Codec) -> Struct:
    """
    Build the full AVL record schema for a codec.

    Layout:
        [timestamp u64][priority u8][gps 15B][event id 1|2B]
        [generation type u8 (codec 16)][io elements]

    The schema is terminated: a record slice with unread bytes fails.
    """
    fields = [
        "timestamp" / Int64ub,    # ms since epoch
        "priority"  / Int8ub,     # 0 low, 1 high, 2 panic
        "gps"       / GpsElement,
        "event_id"  / _UINT[codec.id_width],
    ]
    if codec.has_generation_type:
        fields.append("generation_type" / Int8ub)
    fields.append("io" / io_element_schema(codec))
    fields.append(Terminated)
    return Struct(*fields)


RECORD_SCHEMAS = {codec: record_schema(codec) for codec in Codec}
"""Mapping of codecs to their record schemas."""

# ============================================================
# Byte primitives
# ============================================================

def be_uint(data: bytes) -> int:
    """
    Read a big-endian unsigned integer of any width.

    Example:
        >>> be_uint(b"\\x01\\x00")
        256
    """
    value = 0
    for b in data:
        value = (value << 8) | b
    return value


def crc16_ibm(data: bytes) -> int:
    """
    CRC-16/ARC (IBM) over ``data``: poly 0xA001 reflected, init 0, no final XOR.

    Example:
        >>> hex(crc16_ibm(b"123456789"))
        '0xbb3d'
    """
    crc = 0
    for b in data:
        crc ^= b
        for _ in range(8):
            carry = crc & 1
            crc >>= 1
            if carry:
                crc ^= CRC16_POLY
    return crc


def device_id_digits(raw: bytes) -> str:
    """
    Render a device identifier by writing each nibble as a decimal number.

    ASCII digits come out as their hex text (b"35" -> "3335"); nibbles of
    10..15 come out as two characters ("10".."15"), not as hex letters.
    """
    return "".join(f"{b >> 4}{b & 0x0F}" for b in raw)
