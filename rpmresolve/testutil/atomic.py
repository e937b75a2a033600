"""
thread/atomic related utilities
"""
import threading
from typing import List


class AtomicCounter:
    """ A thread-safe counter """

    def __init__(self, count: int = 0) -> None:
        self._count = count
        self._lock = threading.Lock()

    def inc(self) -> None:
        with self._lock:
            self._count += 1

    def dec(self) -> bool:
        """ decrease the count if it is positive, return whether it was """
        with self._lock:
            if self._count <= 0:
                return False
            self._count -= 1
            return True

    @property
    def count(self) -> int:
        with self._lock:
            return self._count


class AtomicLog:
    """ A thread-safe, append only list of strings """

    def __init__(self) -> None:
        self._items: List[str] = []
        self._lock = threading.Lock()

    def append(self, item: str) -> None:
        with self._lock:
            self._items.append(item)

    @property
    def items(self) -> List[str]:
        with self._lock:
            return list(self._items)
