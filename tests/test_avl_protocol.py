import pytest

from avl_stack.l0_core.events import Codec, Transport
from avl_stack.l0_core.errors import InvalidParameter, TooShort
from avl_stack.l2_avl.avl_protocol import (
    be_uint, crc16_ibm, device_id_digits, RECORD_SCHEMAS, StreamHeader, DatagramHeader,
)

from avl_vectors import C8_STREAM_1, C8_DATAGRAM, stream_payload


def test_crc16_ibm_check_value():
    # CRC-16/ARC catalogue check value
    assert crc16_ibm(b"123456789") == 0xBB3D
    assert crc16_ibm(b"") == 0


def test_crc16_ibm_matches_reference_trailer():
    assert crc16_ibm(bytes(stream_payload(C8_STREAM_1))) == 0xC7CF


def test_be_uint_is_lossless_for_eight_bytes():
    # above 2**53, where a float would round
    assert be_uint(b"\xff" * 8) == 2**64 - 1
    assert be_uint(b"\x00\x20\x00\x00\x00\x00\x00\x01") == 2**53 + 1
    assert be_uint(b"") == 0


def test_device_id_digits_writes_nibbles_as_decimal():
    assert device_id_digits(b"35") == "3335"
    # nibble 0xA comes out as "10", not "a"
    assert device_id_digits(b"\xa5") == "105"


def test_stream_and_datagram_headers():
    h = StreamHeader.parse(C8_STREAM_1)
    assert h.preamble == 0 and h.data_length == 0x36
    d = DatagramHeader.parse(C8_DATAGRAM)
    assert d.length == 61 and d.packet_id == 0xCAFE
    assert d.marker == 1 and d.record_sequence_id == 5 and d.device_id_length == 15


def test_record_schema_per_codec():
    assert set(RECORD_SCHEMAS) == set(Codec)
    record = bytes(stream_payload(C8_STREAM_1))[2:-1]
    parsed = RECORD_SCHEMAS[Codec.C8].parse(record)
    assert parsed.io.total == 5
    assert [(e.id, e.value) for e in parsed.io.n1] == [(21, 3), (1, 1)]


def test_codec_widths():
    assert (Codec.C8.id_width, Codec.C8.count_width) == (1, 1)
    assert (Codec.C8E.id_width, Codec.C8E.count_width) == (2, 2)
    assert (Codec.C16.id_width, Codec.C16.count_width) == (2, 1)
    assert Codec.C16.has_generation_type and not Codec.C8E.has_generation_type
    assert Codec.C8E.has_variable_group and not Codec.C16.has_variable_group


@pytest.mark.parametrize("value,expected", [
    ("8", Codec.C8), ("c8", Codec.C8), ("8e", Codec.C8E), ("C16", Codec.C16),
    (0x8E, Codec.C8E), (16, Codec.C16), (Codec.C8, Codec.C8),
])
def test_codec_coerce(value, expected):
    assert Codec.coerce(value) is expected


def test_codec_coerce_rejects_unknown():
    for bad in ("12", 9, None, True, 8.0):
        with pytest.raises(InvalidParameter):
            Codec.coerce(bad)


def test_transport_coerce():
    assert Transport.coerce("TCP") is Transport.STREAM
    assert Transport.coerce("udp") is Transport.DATAGRAM
    assert Transport.coerce("datagram") is Transport.DATAGRAM
    with pytest.raises(InvalidParameter):
        Transport.coerce(1)


def test_error_message_carries_context():
    err = TooShort("frame too short", offset=0, expected=8, actual=3)
    assert str(err) == "frame too short (offset=0, expected=8, actual=3)"
