from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Callable

from domain.base_types import TransactionId


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TransactionSequencer:
    """Hands out ``(id, timestamp)`` pairs for newly accepted transactions.

    Ids increase by one per call. Timestamps never go backwards, even if the
    clock does, so ledger order by timestamp agrees with order by id.
    """

    def __init__(
        self,
        *,
        last_id: int = 0,
        last_timestamp: datetime | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._last_id = last_id
        self._last_timestamp = last_timestamp
        self._clock = clock
        self._lock = threading.Lock()

    def next(
        self, *, stored_id: int = 0, stored_timestamp: datetime | None = None
    ) -> tuple[TransactionId, datetime]:
        """Next pair, also placed after ``stored_id`` and ``stored_timestamp``.

        Other processes writing to the same database advance the stored ledger
        without touching this counter; callers pass its latest row here.
        """
        with self._lock:
            now = self._clock()
            if now.tzinfo is None:
                raise ValueError("Sequencer clock must return timezone-aware datetimes")
            self._last_id = max(self._last_id, stored_id)
            if stored_timestamp is not None:
                if self._last_timestamp is None or stored_timestamp > self._last_timestamp:
                    self._last_timestamp = stored_timestamp
            if self._last_timestamp is not None and now < self._last_timestamp:
                now = self._last_timestamp
            self._last_id += 1
            self._last_timestamp = now
            return TransactionId(self._last_id), now

    @property
    def last_id(self) -> int:
        return self._last_id


__all__ = ["TransactionSequencer", "utc_now"]
