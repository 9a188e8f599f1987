"""Most-recent-wins holder for results produced off the frame loop."""

import threading
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar('T')


@dataclass(frozen=True)
class TimedResult(Generic[T]):
    """A result tagged with the clock value of the query that produced it."""
    query_time: float
    value: T


class LatestResultSlot(Generic[T]):
    """Holds the newest pending result from an asynchronous collaborator.

    A result is accepted only when its query time is newer than every
    result accepted before; late or out-of-order results are discarded.
    Offers may come from any thread, while take() is called from the
    frame loop.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._pending: Optional[TimedResult[T]] = None
        self._latest_time: Optional[float] = None

    @property
    def latest_time(self) -> Optional[float]:
        with self._lock:
            return self._latest_time

    def offer(self, value: T, query_time: float) -> bool:
        """Offer a completed result.

        Returns:
            True if the result was accepted, False if it was stale
        """
        with self._lock:
            if self._latest_time is not None and query_time <= self._latest_time:
                return False
            self._latest_time = query_time
            self._pending = TimedResult(query_time=query_time, value=value)
            return True

    def take(self) -> Optional[TimedResult[T]]:
        """Remove and return the pending result, if any."""
        with self._lock:
            pending, self._pending = self._pending, None
            return pending

    def clear(self) -> None:
        with self._lock:
            self._pending = None
            self._latest_time = None
