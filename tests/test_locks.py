"""Tests for the session lock."""

import asyncio

import pytest

from bnbwallet.utils.locks import LockTimeoutError, SessionLock


class TestSessionLock:
    """Tests for SessionLock."""

    @pytest.mark.asyncio
    async def test_context_manager(self):
        """Test the lock is held inside the block and released after."""
        lock = asyncio.Lock()

        async with SessionLock(lock, operation="test"):
            assert lock.locked()

        assert not lock.locked()

    @pytest.mark.asyncio
    async def test_released_on_exception(self):
        lock = asyncio.Lock()

        with pytest.raises(RuntimeError):
            async with SessionLock(lock):
                raise RuntimeError("boom")

        assert not lock.locked()

    @pytest.mark.asyncio
    async def test_prevents_concurrent_access(self):
        """Test that the lock serializes concurrent blocks."""
        lock = asyncio.Lock()
        events = []

        async def worker(name: str):
            async with SessionLock(lock, operation=name):
                events.append(f"{name}:start")
                await asyncio.sleep(0.01)
                events.append(f"{name}:end")

        await asyncio.gather(worker("a"), worker("b"))

        assert events == ["a:start", "a:end", "b:start", "b:end"]

    @pytest.mark.asyncio
    async def test_timeout(self):
        lock = asyncio.Lock()
        await lock.acquire()

        with pytest.raises(LockTimeoutError):
            async with SessionLock(lock, timeout=0.01):
                pass

        # The waiter gave up; the original holder still owns the lock
        assert lock.locked()
        lock.release()

    @pytest.mark.asyncio
    async def test_no_timeout_waits(self):
        lock = asyncio.Lock()
        await lock.acquire()

        async def release_later():
            await asyncio.sleep(0.01)
            lock.release()

        releaser = asyncio.create_task(release_later())
        async with SessionLock(lock, timeout=None):
            assert lock.locked()
        await releaser
