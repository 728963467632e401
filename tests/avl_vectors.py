"""Reference packets captured from trackers, plus helpers to re-frame edited payloads."""

import struct

from avl_stack.l2_avl.avl_protocol import crc16_ibm

C8_STREAM_1 = bytes.fromhex(
    "000000000000003608010000016B40D8EA30010000000000000000000000000000000105021503"
    "010101425E0F01F10000601A014E0000000000000000010000C7CF"
)
C8_STREAM_2 = bytes.fromhex(
    "000000000000002808010000016B40D9AD80010000000000000000000000000000000103021503"
    "010101425E100000010000F22A"
)
C8_STREAM_TWO_RECORDS = bytes.fromhex(
    "000000000000004308020000016B40D57B48010000000000000000000000000000000101010100"
    "0000000000016B40D5C198010000000000000000000000000000000101010101000000020000252C"
)
C8_DATAGRAM = bytes.fromhex(
    "003DCAFE0105000F33353230393330383634303336353508010000016B4F815B3001000000000000"
    "0000000000000000000103021503010101425DBC000001"
)
C8E_STREAM = bytes.fromhex(
    "000000000000004A8E010000016B412CEE000100000000000000000000000000000000010005000100"
    "010100010011001D00010010015E2C880002000B000000003544C87A000E000000001DD7E06A000001"
    "00002994"
)
C8E_DATAGRAM = bytes.fromhex(
    "005FCAFE0107000F3335323039333038363430333635358E010000016B4F831C6801000000000000"
    "00000000000000000000010005000100010100010011009D00010010015E2C880002000B00000000"
    "3544C87A000E000000001DD7E06A000001"
)
C16_STREAM = bytes.fromhex(
    "000000000000005F10020000016BDBC7833000000000000000000000000000000000000B05040200"
    "010000030002000B00270042563A00000000016BDBC7871800000000000000000000000000000000"
    "000B05040200010000030002000B00260042563A00000200005FB3"
)
C16_DATAGRAM = bytes.fromhex(
    "0048CAFE0101000F33353230393430383532333135393210010000015117E40FE800000000000000"
    "00000000000000000000EF05050400010000030000B40000EF01010042111A000001"
)


def stream_payload(frame: bytes) -> bytearray:
    """Codec payload of a stream frame, as a mutable copy."""
    return bytearray(frame[8:-4])


def stream_frame(payload: bytes) -> bytes:
    """Wrap a codec payload in a stream frame with a correct length and CRC."""
    return (struct.pack(">II", 0, len(payload)) + bytes(payload)
            + struct.pack(">I", crc16_ibm(bytes(payload))))
