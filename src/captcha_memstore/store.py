"""In-memory answer store with lazy expiry and a background sweep."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from captcha_memstore.base import AnswerStore, ExpiredError, NotFoundError
from captcha_memstore.config import StoreConfig
from captcha_memstore.rwlock import RWLock
from captcha_memstore.utils.timeutil import now_ns, seconds_to_ns


logger = logging.getLogger(__name__)


@dataclass
class Entry:
    value: str
    expires_at: int


class TTLStore(AnswerStore):
    """Thread-safe map of id to answer whose entries expire after a fixed TTL.

    Expired entries are reported by ``get`` but only removed by a background
    sweep thread, which runs every ``sweep_interval_seconds`` until
    :meth:`close` is called.
    """

    def __init__(self, config: StoreConfig | None = None) -> None:
        self.config = config or StoreConfig()
        self._expiration_ns = seconds_to_ns(self.config.expiration_seconds)
        self._entries: dict[str, Entry] = {}
        self._lock = RWLock()
        self._stop = threading.Event()
        self._sweeper = threading.Thread(target=self._sweep_loop, name="captcha-memstore-sweep", daemon=True)
        self._sweeper.start()

    def set(self, id: str, value: str) -> None:
        entry = Entry(value=value, expires_at=now_ns() + self._expiration_ns)
        with self._lock.write():
            self._entries[id] = entry

    def get(self, id: str, consume: bool = False) -> str:
        if consume:
            with self._lock.write():
                entry = self._lookup(id)
                del self._entries[id]
                return entry.value

        with self._lock.read():
            return self._lookup(id).value

    def _lookup(self, id: str) -> Entry:
        # Caller holds the lock. Expired entries stay in place for the sweep.
        entry = self._entries.get(id)
        if entry is None:
            raise NotFoundError(id)
        if now_ns() > entry.expires_at:
            raise ExpiredError(id)
        return entry

    def _delete_expired(self) -> int:
        now = now_ns()
        with self._lock.write():
            expired = [id for id, entry in self._entries.items() if now > entry.expires_at]
            for id in expired:
                self._entries.pop(id, None)
        return len(expired)

    def _sweep_loop(self) -> None:
        interval = self.config.sweep_interval_seconds
        logger.debug("Sweep thread started (interval=%ss)", interval)
        while not self._stop.wait(interval):
            evicted = self._delete_expired()
            if evicted:
                logger.debug("Swept %d expired entries", evicted)
        logger.debug("Sweep thread stopped")

    @property
    def closed(self) -> bool:
        return self._stop.is_set()

    def close(self) -> None:
        """Stop the sweep thread and wait for it to exit. Safe to call twice."""
        self._stop.set()
        if self._sweeper.is_alive() and self._sweeper is not threading.current_thread():
            self._sweeper.join()

    def __enter__(self) -> "TTLStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
