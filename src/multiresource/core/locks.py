from __future__ import annotations

import threading
import weakref


class TokenLocks:
    """Process-local mutual exclusion, one re-entrant lock per token id.

    Ledger mutations are read-modify-write over several tables; holding the
    token's lock for the whole operation keeps intermediate state invisible
    to other threads of the same process. A token's lock lives only as long as
    some caller holds a reference to it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[int, threading.RLock] = weakref.WeakValueDictionary()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def for_token(self, token_id: int) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(token_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[token_id] = lock
            return lock
