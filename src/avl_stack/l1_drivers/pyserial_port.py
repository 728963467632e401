from __future__ import annotations

from typing import Optional
import threading
import logging

import serial  # provided by pyserial
from serial import SerialException
from .serial_port import SerialPort, SerialError, BytesCallback

DEFAULT_READ_CHUNK = 512

log = logging.getLogger(__name__)


class PySerialPort(SerialPort):
    """
    SerialPort implementation over pyserial for trackers that emit
    stream-transport AVL frames on a serial line.

    Current capabilities:
    - Open and close a serial connection.
    - Check if the connection is open.
    - Deliver received chunks to a registered callback from a background thread.
    """

    def __init__(self, device: str, baudrate: int = 115200, timeout: float = 0.05) -> None:
        self._device = device
        self._baudrate = baudrate
        self._timeout = timeout

        self._ser: Optional[serial.Serial] = None
        self._on_bytes: Optional[BytesCallback] = None

        self._reader_thread: Optional[threading.Thread] = None
        self._stop_flag = threading.Event()

    def open(self) -> None:
        """
        Open the serial connection and start the background reader thread.

        Raises:
            SerialError: If opening the device fails due to a SerialException.
        """
        try:
            self._ser = serial.Serial(
                self._device,
                self._baudrate,
                timeout=self._timeout
            )
        except SerialException as e:
            raise SerialError(f"Failed to open {self._device}: {e}") from e

        self._stop_flag.clear()
        self._reader_thread = threading.Thread(
            target=self._reader_loop,
            name="avl-rx-reader",
            daemon=True
        )
        self._reader_thread.start()
        log.info("Opened %s @ %d baud", self._device, self._baudrate)

    def close(self) -> None:
        """
        Stop the reader thread and close the serial port.

        Raises:
            SerialError: If the reader thread does not stop within 1s or if
                        closing the port raises a SerialException.
        """
        self._stop_flag.set()
        if self._reader_thread and self._reader_thread.is_alive():
            self._reader_thread.join(timeout=1.0)
            if self._reader_thread.is_alive():
                raise SerialError("Failed to stop reader thread")
        self._reader_thread = None

        if self._ser and self._ser.is_open:
            try:
                self._ser.close()
            except SerialException as e:
                raise SerialError(f"Failed to close {self._device}: {e}") from e
        self._ser = None

    def is_open(self) -> bool:
        return bool(self._ser and self._ser.is_open)

    def set_reader(self, on_bytes: Optional[BytesCallback]) -> None:
        """
        Register or remove the callback for incoming bytes.

        The callback runs on the reader thread; keep it short and hand heavy
        work (decoding) to another thread.
        """
        self._on_bytes = on_bytes

    def _reader_loop(self) -> None:
        """
        Read up to DEFAULT_READ_CHUNK bytes at a time until close() is called.

        An empty read is a timeout and is ignored. A SerialException ends the
        loop. Callback errors are logged and reading continues.
        """
        log.info("RX reader started")
        ser = self._ser
        if not ser:
            return
        while not self._stop_flag.is_set():
            try:
                chunk = ser.read(DEFAULT_READ_CHUNK)  # returns b"" on timeout
            except SerialException:
                log.exception("Read failed on %s; reader exiting", self._device)
                break
            if chunk and self._on_bytes:
                try:
                    self._on_bytes(chunk)
                except Exception:
                    log.exception("RX callback error")
        log.info("RX reader exiting")
