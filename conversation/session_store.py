from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from config.logging_config import log
from conversation.errors import SessionError, SessionErrorKind
from conversation.models import ConversationSession, Primitive, Step, utcnow
from database.base import Repository


class SessionStore:
    """
    Per-identity conversation step with a fixed TTL.

    Rows live in the repository; ``_cache`` is a read-through copy. Entries are
    immutable ``ConversationSession`` objects, replaced whole on every write.
    "No session" is represented by the absence of a row.
    """

    def __init__(
        self,
        repository: Repository,
        ttl: timedelta = timedelta(minutes=5),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.ttl = ttl
        self.clock = clock
        self._cache: Dict[str, ConversationSession] = {}

    async def create_or_replace(
        self,
        identity: str,
        step: Step,
        payload: Optional[Dict[str, Primitive]] = None,
    ) -> ConversationSession:
        session = ConversationSession(
            identity=identity,
            step=step,
            payload=dict(payload or {}),
            expires_at=self.clock() + self.ttl,
        )
        try:
            await self.repository.upsert_session(identity, step.value, session.payload, session.expires_at)
        except Exception as e:
            log.error(f"Session creation failed for {identity}: {e}")
            raise SessionError(SessionErrorKind.PERSISTENCE_UNAVAILABLE, str(e)) from e

        self._cache[identity] = session
        log.debug(f"Session created for {identity}: step={step.value}")
        return session

    async def get(self, identity: str) -> Optional[ConversationSession]:
        session = self._cache.get(identity)

        if session is None:
            try:
                row = await self.repository.load_session(identity)
            except Exception as e:
                log.error(f"Session retrieval failed for {identity}: {e}")
                return None
            if row is None:
                return None
            try:
                session = ConversationSession(
                    identity=identity,
                    step=Step(row["step"]),
                    payload=row.get("payload") or {},
                    expires_at=row["expires_at"],
                )
            except ValueError as e:
                log.warning(f"Discarding unreadable session for {identity}: {e}")
                await self._clear_quietly(identity)
                return None
            self._cache[identity] = session

        # the repository filters with its own clock; re-check with ours
        if session.is_expired(self.clock()):
            await self._clear_quietly(identity)
            return None

        return session

    async def clear(self, identity: str) -> None:
        self._cache.pop(identity, None)
        try:
            await self.repository.delete_session(identity)
        except Exception as e:
            log.error(f"Session clearing failed for {identity}: {e}")
            raise SessionError(SessionErrorKind.PERSISTENCE_UNAVAILABLE, str(e)) from e
        log.debug(f"Session cleared for {identity}")

    async def purge_expired(self) -> int:
        now = self.clock()
        for identity in [k for k, s in self._cache.items() if s.is_expired(now)]:
            self._cache.pop(identity, None)
        try:
            removed = await self.repository.delete_expired_sessions()
        except Exception as e:
            log.error(f"Session cleanup error: {e}")
            raise SessionError(SessionErrorKind.PERSISTENCE_UNAVAILABLE, str(e)) from e
        log.info(f"Expired sessions cleaned up: {removed}")
        return removed

    async def _clear_quietly(self, identity: str) -> None:
        try:
            await self.clear(identity)
        except SessionError:
            pass
