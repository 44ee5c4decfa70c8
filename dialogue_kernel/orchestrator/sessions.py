"""
Session Manager — keyed DialogueSessions with per-key serialization.

The orchestrator does not defend against overlapping execute() calls on one
session. Callers that serve many users (the HTTP API) go through this
manager, which holds one asyncio.Lock per session key.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

from loguru import logger

from dialogue_kernel.models.results import DialogueResult
from dialogue_kernel.orchestrator.dialogue import DialogueOrchestrator, DialogueSession


class SessionLockTimeout(RuntimeError):
    """Raised when a session's lock cannot be acquired in time."""


class SessionManager:
    def __init__(self, orchestrator: DialogueOrchestrator, lock_timeout: float = 5.0) -> None:
        self.orchestrator = orchestrator
        self.lock_timeout = lock_timeout
        self._sessions: Dict[str, DialogueSession] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    @asynccontextmanager
    async def acquire(self, session_key: str, timeout: Optional[float] = None) -> AsyncIterator[None]:
        lock = self._locks.setdefault(session_key, asyncio.Lock())
        wait = self.lock_timeout if timeout is None else timeout
        try:
            await asyncio.wait_for(lock.acquire(), timeout=wait)
        except asyncio.TimeoutError as exc:
            raise SessionLockTimeout(f"lock timeout: {session_key}") from exc
        try:
            yield
        finally:
            lock.release()

    def get(self, session_key: str) -> Optional[DialogueSession]:
        return self._sessions.get(session_key)

    def get_or_create(self, session_key: str) -> DialogueSession:
        session = self._sessions.get(session_key)
        if session is None:
            session = self.orchestrator.new_session(session_key)
            self._sessions[session_key] = session
            logger.debug(f"Created session {session_key}")
        return session

    async def execute(self, session_key: str, utterance: str) -> DialogueResult:
        """Run one utterance for a session, serialized against its other turns."""
        async with self.acquire(session_key):
            session = self.get_or_create(session_key)
            return await self.orchestrator.execute(session, utterance)

    async def reset(self, session_key: str) -> bool:
        async with self.acquire(session_key):
            session = self._sessions.get(session_key)
            if session is None:
                return False
            self.orchestrator.reset(session)
            return True

    async def delete(self, session_key: str) -> bool:
        async with self.acquire(session_key):
            removed = self._sessions.pop(session_key, None) is not None
        if removed:
            self._locks.pop(session_key, None)
            logger.debug(f"Deleted session {session_key}")
        return removed

    def keys(self) -> List[str]:
        return list(self._sessions.keys())

    def __len__(self) -> int:
        return len(self._sessions)
