from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional

BytesCallback = Callable[[bytes], None]


class SerialError(RuntimeError):
    """Raised by serial drivers instead of library-specific exceptions."""


class SerialPort(ABC):
    """
    Read-side contract for a byte source attached to an AVL tracker.

    Implementations deliver received chunks to the callback registered with
    `set_reader`, from their own reader thread.
    """

    @abstractmethod
    def open(self) -> None: ...

    @abstractmethod
    def close(self) -> None: ...

    @abstractmethod
    def is_open(self) -> bool: ...

    @abstractmethod
    def set_reader(self, on_bytes: Optional[BytesCallback]) -> None: ...
