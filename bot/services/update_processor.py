from __future__ import annotations

import asyncio
import sys
import weakref
from typing import Any, Awaitable

from telegram import Update
from telegram.ext import BaseUpdateProcessor


class PerUserUpdateProcessor(BaseUpdateProcessor):
    """Processes updates concurrently across users, in arrival order per user.

    ``process_update`` takes its slot before ``do_process_update`` runs, so the
    base semaphore is left unbounded and the real limit is applied after the
    user's lock is acquired. Updates queued behind one user never use up the
    slots other users need.
    """

    def __init__(self, max_concurrent_updates: int = 256) -> None:
        if max_concurrent_updates < 1:
            raise ValueError("`max_concurrent_updates` must be a positive integer!")
        super().__init__(sys.maxsize)
        self.limit = max_concurrent_updates
        self._running = asyncio.BoundedSemaphore(max_concurrent_updates)
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, user_id: int) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    async def do_process_update(self, update: object, coroutine: Awaitable[Any]) -> None:
        user = update.effective_user if isinstance(update, Update) else None
        if user is None:
            async with self._running:
                await coroutine
            return
        async with self._lock_for(user.id):
            async with self._running:
                await coroutine

    async def initialize(self) -> None:
        pass

    async def shutdown(self) -> None:
        pass
