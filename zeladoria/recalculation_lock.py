import threading
from contextlib import contextmanager
from typing import Optional
from datetime import datetime

from zeladoria.logging_config import get_logger

logger = get_logger(__name__)


class RecalculationBusyError(RuntimeError):
    """Raised when the recalculation lock could not be acquired in time."""


class RecalculationLockManager:
    """
    Serializes schedule writes within one process.

    Completion registrations and full recalculations both rewrite a lot's
    predictions; running them one at a time keeps the last write consistent
    with the last read. Callers wait for the lock instead of failing fast.
    Separate worker processes are not coordinated.
    """

    def __init__(self, timeout_seconds: int = 30):
        self._lock = threading.RLock()  # Reentrant: a recalculation may call another
        self._state_lock = threading.Lock()
        self._current_operation = None
        self._holder_thread_id = None
        self._acquired_at: Optional[datetime] = None
        self._depth = 0
        self._timeout_seconds = timeout_seconds

    def is_locked(self) -> bool:
        """Check if a recalculation is currently running"""
        with self._state_lock:
            return self._depth > 0

    def get_current_operation(self) -> Optional[str]:
        """Get the name of the operation holding the lock"""
        with self._state_lock:
            return self._current_operation if self._depth > 0 else None

    @contextmanager
    def acquire(self, operation_name: str, timeout_seconds: Optional[int] = None):
        """
        Context manager that holds the recalculation lock.

        Args:
            operation_name: Name of the operation acquiring the lock
            timeout_seconds: How long to wait (defaults to the manager timeout)

        Raises:
            RecalculationBusyError: If the lock is still held after the timeout
        """
        timeout = timeout_seconds or self._timeout_seconds
        if not self._lock.acquire(timeout=timeout):
            logger.warning(
                "Recalculation lock timeout",
                operation=operation_name,
                held_by=self.get_current_operation(),
                timeout_seconds=timeout
            )
            raise RecalculationBusyError(
                f"Schedule recalculation busy ({self.get_current_operation()}); gave up after {timeout}s"
            )

        with self._state_lock:
            self._depth += 1
            if self._depth == 1:
                self._current_operation = operation_name
                self._holder_thread_id = threading.get_ident()
                self._acquired_at = datetime.now()
        logger.debug("Recalculation lock acquired", operation=operation_name)

        try:
            yield
        finally:
            with self._state_lock:
                self._depth -= 1
                if self._depth == 0:
                    self._current_operation = None
                    self._holder_thread_id = None
                    self._acquired_at = None
            self._lock.release()
            logger.debug("Recalculation lock released", operation=operation_name)

    def get_status(self) -> dict:
        """Get current status of the lock manager"""
        with self._state_lock:
            acquired_at = self._acquired_at
            return {
                "is_locked": self._depth > 0,
                "current_operation": self._current_operation,
                "timestamp": datetime.now().isoformat(),
                "held_by_thread": self._holder_thread_id,
                "held_for_seconds": (datetime.now() - acquired_at).total_seconds() if acquired_at else 0,
                "timeout_seconds": self._timeout_seconds,
            }


# Global instance - create once and reuse
recalculation_lock = RecalculationLockManager()
