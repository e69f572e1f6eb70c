"""Concurrency control for wallet sessions.

A session must never interleave a precondition check from one request
with the state update of another, so every validate+dispatch pair runs
under the session's lock.
"""

import asyncio
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class LockTimeoutError(Exception):
    """Raised when a lock cannot be acquired within the timeout period."""

    pass


class SessionLock:
    """Context manager for exclusive access to a wallet session.

    Example:
        async with SessionLock(lock, operation="sendBNB"):
            command = validate(session, request)
            await dispatcher.dispatch(command)
    """

    def __init__(
        self,
        lock: asyncio.Lock,
        timeout: Optional[float] = 30.0,
        operation: str = "session_operation",
    ):
        """Initialize the lock guard.

        Args:
            lock: The session's lock
            timeout: Maximum time to wait for lock (None = wait forever)
            operation: Description of the operation for logging
        """
        self.timeout = timeout
        self.operation = operation
        self._lock = lock
        self._acquired = False

    async def __aenter__(self) -> "SessionLock":
        """Acquire the lock."""
        try:
            if self.timeout:
                await asyncio.wait_for(self._lock.acquire(), timeout=self.timeout)
            else:
                await self._lock.acquire()
            self._acquired = True
            logger.debug(f"Session lock acquired: {self.operation}")
            return self

        except asyncio.TimeoutError:
            logger.warning(f"Session lock timeout after {self.timeout}s: {self.operation}")
            raise LockTimeoutError(
                f"Could not acquire session lock within {self.timeout}s"
            ) from None

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Release the lock."""
        if self._acquired:
            self._lock.release()
            self._acquired = False
            logger.debug(f"Session lock released: {self.operation}")
        return False
