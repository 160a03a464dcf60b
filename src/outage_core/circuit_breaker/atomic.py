"""Compare-and-set reference cell."""

import threading
from typing import Generic, TypeVar

T = TypeVar("T")


class AtomicReference(Generic[T]):
    """Reference that is replaced only through compare-and-set.

    Reads never block. Writers serialize on a lock held only across the
    identity check and the store, so at most one of several racing
    ``compare_and_set`` calls made against the same expected value succeeds.
    """

    __slots__ = ("_lock", "_value")

    def __init__(self, value: T) -> None:
        self._value = value
        self._lock = threading.Lock()

    def get(self) -> T:
        """Return the current value."""
        return self._value

    def compare_and_set(self, expected: T, new: T) -> bool:
        """Store ``new`` if the current value is ``expected`` (by identity).

        Returns:
            ``True`` when the swap happened, ``False`` if another writer
            replaced the value first.
        """
        with self._lock:
            if self._value is not expected:
                return False
            self._value = new
            return True
