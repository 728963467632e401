"""
avl_framing.py
==============
Cut complete stream-transport frames out of a continuous byte stream.

Format:
    [00 00 00 00][length u32][payload * length][crc u32]

Only the envelope is inspected here; CRC and record validation happen in
`avl_decode.decode`. Datagrams need no assembly: one datagram is one frame.
"""

from __future__ import annotations

import logging

from . import avl_protocol as proto

DEFAULT_MAX_FRAME_SIZE = 1_048_576

log = logging.getLogger(__name__)


class StreamFrameAssembler:
    """
    Stateful reassembler for stream-transport frames.

    A buffer head that is not a zero preamble, or that declares a payload
    larger than ``max_frame_size``, is dropped one byte at a time until a
    plausible header is found.
    """

    def __init__(self, max_frame_size: int = DEFAULT_MAX_FRAME_SIZE) -> None:
        if max_frame_size <= proto.STREAM_OVERHEAD:
            raise ValueError("max_frame_size must exceed the frame overhead")
        self.max_frame_size = max_frame_size
        self.dropped: int = 0
        self._buf = bytearray()

    def feed(self, data: bytes) -> list[bytes]:
        """Feed raw bytes, return any complete frames in arrival order."""
        self._buf.extend(data)
        frames: list[bytes] = []

        while len(self._buf) >= proto.STREAM_HEADER_SIZE:
            header = proto.StreamHeader.parse(bytes(self._buf[:proto.STREAM_HEADER_SIZE]))
            total = header.data_length + proto.STREAM_OVERHEAD
            if header.preamble != 0 or total > self.max_frame_size:
                log.warning("stream resync: dropping 1 byte (buf=%d)", len(self._buf))
                del self._buf[0]
                self.dropped += 1
                continue
            if len(self._buf) < total:
                break

            frames.append(bytes(self._buf[:total]))
            del self._buf[:total]

        return frames

    def pending(self) -> int:
        """Number of buffered bytes not yet part of a complete frame."""
        return len(self._buf)

    def reset(self) -> None:
        """Clear internal buffer."""
        self._buf.clear()
