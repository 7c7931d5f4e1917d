# ─────────────────────────────────────────────────────────────────────────────
# Persistence Gateway — the contract the orchestrator consumes
# ─────────────────────────────────────────────────────────────────────────────


import threading
from collections.abc import Callable
from typing import Protocol

from contract_forge.persistence.models import GeneratedContract, User


class CommitGate:
    """Single, thread-safe decision between committing a write and aborting it.

    The store commits through commit() on an executor thread; the request
    side calls abort() on the event loop when its deadline expires. Whichever
    runs first wins, and the loser sees False.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._committed = False
        self._aborted = False

    def commit(self, do_commit: Callable[[], None]) -> bool:
        """Run ``do_commit`` unless aborted. A failing commit leaves the gate open."""
        with self._lock:
            if self._aborted:
                return False
            do_commit()
            self._committed = True
            return True

    def abort(self) -> bool:
        """Forbid any later commit. False if the commit already happened."""
        with self._lock:
            if self._committed:
                return False
            self._aborted = True
            return True

    @property
    def committed(self) -> bool:
        return self._committed


class PersistenceGateway(Protocol):
    """User resolution + artifact recording.

    Both calls are fallible and are not retried; failures are raised as
    PersistenceError.
    """

    async def ensure_user(self, user_id: str | None) -> User:
        """Return the user, creating it if absent. Idempotent."""
        ...

    async def record_contract(
        self,
        name: str,
        source_code: str,
        user_id: str,
        gate: CommitGate | None = None,
    ) -> GeneratedContract:
        """Insert one generated contract row, committing through ``gate``."""
        ...
