from typing import Any, Tuple, Literal
from queue import Queue, Full, Empty


class BoundedQueue:
    """
    Bounded, thread-safe hand-off between the serial reader and the decoder:
      - fixed capacity (maxsize)
      - drop-newest overflow policy, with a running count of dropped items
      - timed put/get (timeouts passed per call)
    """

    def __init__(self, maxsize: int, name: str,
                 on_overflow: Literal["drop_newest"] = "drop_newest") -> None:
        if not isinstance(maxsize, int) or maxsize <= 0:
            raise ValueError("maxsize must be a positive integer")
        if not isinstance(name, str) or not name.strip():
            raise ValueError("name must be a non-empty string")
        if on_overflow != "drop_newest":
            raise ValueError("on_overflow must be 'drop_newest'")
        self._name = name
        self._q: Queue = Queue(maxsize=maxsize)
        self._dropped = 0

    def put(self, item: Any, timeout: float) -> bool:
        """Return True on enqueue; False (and count a drop) when the queue stays full."""
        try:
            self._q.put(item, timeout=timeout)
            return True
        except Full:
            self._dropped += 1
            return False

    def get(self, timeout: float) -> Tuple[bool, Any]:
        """Return (True, item) on success; (False, None) on timeout."""
        try:
            return True, self._q.get(timeout=timeout)
        except Empty:
            return False, None

    def qsize(self) -> int:
        """Current number of items in the queue (approximate)."""
        return self._q.qsize()

    def maxsize(self) -> int:
        return self._q.maxsize

    def dropped(self) -> int:
        """Items rejected by the overflow policy since creation."""
        return self._dropped

    def name(self) -> str:
        return self._name
