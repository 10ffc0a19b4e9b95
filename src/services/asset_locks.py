from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from domain.base_types import AssetId


class AssetLockRegistry:
    """One lock per asset, created on first use.

    Purchases on different assets never wait on each other here.
    """

    def __init__(self) -> None:
        self._locks: dict[AssetId, threading.Lock] = {}
        self._guard = threading.Lock()

    def lock_for(self, asset_id: AssetId) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(asset_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[asset_id] = lock
            return lock

    @contextmanager
    def hold(self, asset_id: AssetId, *, timeout: float) -> Iterator[bool]:
        """Yield True once the asset's lock is held, False if ``timeout`` ran out first."""
        lock = self.lock_for(asset_id)
        acquired = lock.acquire(timeout=timeout)
        try:
            yield acquired
        finally:
            if acquired:
                lock.release()


__all__ = ["AssetLockRegistry"]
