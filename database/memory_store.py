from __future__ import annotations

from copy import deepcopy
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from conversation.models import SearchEvent, UserProfile, utcnow
from database.base import check_user_fields


class MemoryStore:
    """In-process backend, used for tests and local runs without PostgreSQL."""

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self.clock = clock
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.users: Dict[str, UserProfile] = {}
        self.searches: List[SearchEvent] = []

    # Sessions -------------------------------------------------------------
    async def upsert_session(self, identity: str, step: str, payload: Dict[str, Any], expires_at: datetime) -> None:
        self.sessions[identity] = {
            "step": step,
            "payload": deepcopy(payload),
            "expires_at": expires_at,
        }

    async def load_session(self, identity: str) -> Optional[Dict[str, Any]]:
        row = self.sessions.get(identity)
        if row is None or row["expires_at"] <= self.clock():
            return None
        return deepcopy(row)

    async def delete_session(self, identity: str) -> None:
        self.sessions.pop(identity, None)

    async def delete_expired_sessions(self) -> int:
        now = self.clock()
        expired = [k for k, row in self.sessions.items() if row["expires_at"] < now]
        for k in expired:
            del self.sessions[k]
        return len(expired)

    # Users ----------------------------------------------------------------
    async def ensure_user(self, identity: str) -> UserProfile:
        if identity not in self.users:
            self.users[identity] = UserProfile(identity=identity)
        return self.users[identity].model_copy()

    async def get_user(self, identity: str) -> Optional[UserProfile]:
        user = self.users.get(identity)
        return user.model_copy() if user else None

    async def update_user(self, identity: str, **fields: Any) -> None:
        check_user_fields(fields)
        user = self.users.get(identity) or UserProfile(identity=identity)
        self.users[identity] = user.model_copy(update={**fields, "last_active": utcnow()})

    async def users_with_alerts(self) -> List[UserProfile]:
        return [u.model_copy() for u in self.users.values() if u.notifications and u.email]

    # Search log -----------------------------------------------------------
    async def log_search(self, identity: str, query: str, results: int) -> None:
        self.searches.append(SearchEvent(identity=identity, query=query, results=results))

    async def count_searches(self, identity: Optional[str] = None) -> int:
        if identity is None:
            return len(self.searches)
        return sum(1 for s in self.searches if s.identity == identity)

    async def count_users(self) -> int:
        return len(self.users)
