"""
Per-invoice locks

Operations that read, decide and write one invoice run inside
InvoiceLockRegistry.hold(invoice_id). Operations on different invoices never
wait for each other. Entries are dropped once nobody holds or waits on them.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Generator, List

from invoicetrack.exceptions import LockTimeoutError

logger = logging.getLogger(__name__)


class _Entry:
    __slots__ = ('lock', 'users')

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class InvoiceLockRegistry:
    """Reference-counted mutexes keyed by invoice id"""

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout
        self._guard = threading.Lock()
        self._entries: Dict[str, _Entry] = {}

    def _checkout(self, invoice_id: str) -> _Entry:
        with self._guard:
            entry = self._entries.get(invoice_id)
            if entry is None:
                entry = self._entries[invoice_id] = _Entry()
            entry.users += 1
            return entry

    def _release(self, invoice_id: str, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[invoice_id]

    @contextmanager
    def hold(self, invoice_id: str) -> Generator[None, None, None]:
        """
        Hold the lock for one invoice

        Raises:
            LockTimeoutError: if the lock was not acquired within the timeout
        """
        entry = self._checkout(invoice_id)
        try:
            if not entry.lock.acquire(timeout=self.timeout):
                logger.warning(f"Timed out waiting for lock on invoice {invoice_id}")
                raise LockTimeoutError(invoice_id, self.timeout)
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._release(invoice_id, entry)

    def active(self) -> List[str]:
        """Invoice ids currently held or waited on"""
        with self._guard:
            return list(self._entries)
