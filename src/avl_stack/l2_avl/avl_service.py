"""
avl_service.py
==============
Receive service that turns a tracker's byte stream into decoded packets.

This class wraps:
- L1 driver (`SerialPort`, usually `PySerialPort`) for incoming bytes.
- L2 framing (`avl_framing`) to cut stream frames out of the byte stream.
- L2 decode (`avl_decode`) to validate and decode each frame.

Design:
- The reader callback only enqueues bytes; decoding runs on one dispatcher thread.
- Rejected frames and record anomalies are logged here, keeping the decoder pure.

Usage:
    from avl_stack.l1_drivers.pyserial_port import PySerialPort
    from avl_stack.l2_avl.avl_service import AvlService

    svc = AvlService(PySerialPort("/dev/ttyUSB0"), codec="8", on_packet=print)
    svc.open()
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from avl_stack.l0_core.events import Codec, Transport, DecodedPacket, now_ms
from avl_stack.l0_core.errors import DecodeError
from avl_stack.l1_drivers.serial_port import SerialPort
from . import avl_decode
from .avl_framing import StreamFrameAssembler, DEFAULT_MAX_FRAME_SIZE
from .protocol_queue import BoundedQueue

# Queue sizes & timeouts
RX_QUEUE_MAX   = 4096
Q_PUT_TIMEOUT  = 0.01
Q_GET_TIMEOUT  = 0.10

PacketCallback = Callable[[DecodedPacket], None]

log = logging.getLogger(__name__)


class AvlService:
    """
    Decode stream-transport AVL frames arriving on a serial port.
    """

    def __init__(self, port: SerialPort, codec: Any,
                 on_packet: Optional[PacketCallback] = None,
                 max_frame_size: int = DEFAULT_MAX_FRAME_SIZE) -> None:
        self._port = port
        self._codec = Codec.coerce(codec)
        self._on_packet = on_packet
        self._assembler = StreamFrameAssembler(max_frame_size)
        self._rx_bytes = BoundedQueue(RX_QUEUE_MAX, "RxByteQueue")

        self._dispatcher_thread: Optional[threading.Thread] = None
        self._alive = threading.Event()

        self.decoded: int = 0
        self.rejected: int = 0

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    def open(self) -> None:
        """Start the dispatcher thread and open the port."""
        self._alive.set()
        self._dispatcher_thread = threading.Thread(
            target=self._dispatcher_loop, name="avl-dispatcher", daemon=True
        )
        self._dispatcher_thread.start()
        self._port.set_reader(self._on_serial_bytes)
        self._port.open()

    def close(self) -> None:
        """
        Stop the dispatcher and close the port. Idempotent.
        """
        was_running = self._alive.is_set()
        self._alive.clear()
        self._port.set_reader(None)

        t = self._dispatcher_thread
        if was_running and t and t.is_alive() and t is not threading.current_thread():
            t.join(timeout=0.5)
        self._dispatcher_thread = None
        log.info("Dispatcher thread stopped (decoded=%d rejected=%d)",
                 self.decoded, self.rejected)

        self._port.close()

    def set_on_packet(self, cb: Optional[PacketCallback]) -> None:
        """Register a callback for decoded packets (runs on the dispatcher thread)."""
        self._on_packet = cb

    @property
    def codec(self) -> Codec:
        return self._codec

    # -------------------------------------------------------------------------
    # RX Handling
    # -------------------------------------------------------------------------
    def process(self, chunk: bytes) -> list[DecodedPacket]:
        """
        Assemble frames from ``chunk``, decode them and deliver the results.

        Frames that fail to decode are logged and counted in ``rejected``.
        """
        packets: list[DecodedPacket] = []
        for frame in self._assembler.feed(chunk):
            try:
                result = avl_decode.decode(self._codec, Transport.STREAM, frame)
            except DecodeError as exc:
                self.rejected += 1
                log.warning("Rejected frame (%d bytes): %s", len(frame), exc)
                continue

            for anomaly in result.diagnostics:
                log.warning("record %d: %s [%s]", anomaly.record_index,
                            anomaly.message, anomaly.code)

            packet = DecodedPacket(
                received_millis=now_ms(),
                codec=self._codec,
                transport=Transport.STREAM,
                result=result,
            )
            self.decoded += 1
            packets.append(packet)
            self._deliver(packet)
        return packets

    def _on_serial_bytes(self, data: bytes) -> None:
        """Reader callback from the port: enqueue bytes only."""
        if not self._alive.is_set() or not data:
            return
        if not self._rx_bytes.put(data, timeout=Q_PUT_TIMEOUT):
            log.warning("[%s] overflow: dropped %d bytes", self._rx_bytes.name(), len(data))

    def _dispatcher_loop(self) -> None:
        log.info("Dispatcher thread started")
        while self._alive.is_set():
            ok, chunk = self._rx_bytes.get(timeout=Q_GET_TIMEOUT)
            if not ok:
                continue
            self.process(chunk)

    def _deliver(self, packet: DecodedPacket) -> None:
        if self._on_packet:
            try:
                self._on_packet(packet)
            except Exception:
                log.exception("on_packet callback error")
