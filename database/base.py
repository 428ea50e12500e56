from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from conversation.models import UserProfile


class Repository(Protocol):
    """Persistence contract used by the conversation core.

    Session rows are plain values: ``{"step", "payload", "expires_at"}``.
    ``load_session`` only returns rows that have not expired according to the
    backend's own clock.
    """

    async def upsert_session(self, identity: str, step: str, payload: Dict[str, Any], expires_at: datetime) -> None: ...

    async def load_session(self, identity: str) -> Optional[Dict[str, Any]]: ...

    async def delete_session(self, identity: str) -> None: ...

    async def delete_expired_sessions(self) -> int: ...

    async def ensure_user(self, identity: str) -> UserProfile: ...

    async def get_user(self, identity: str) -> Optional[UserProfile]: ...

    async def update_user(self, identity: str, **fields: Any) -> None: ...

    async def users_with_alerts(self) -> List[UserProfile]: ...

    async def log_search(self, identity: str, query: str, results: int) -> None: ...

    async def count_searches(self, identity: Optional[str] = None) -> int: ...

    async def count_users(self) -> int: ...


USER_FIELDS = (
    "email",
    "location",
    "price_min",
    "price_max",
    "surface_min",
    "surface_max",
    "property_type",
    "notifications",
)

FILTER_FIELDS = ("price_min", "price_max", "surface_min", "surface_max", "property_type")


def check_user_fields(fields: Dict[str, Any]) -> None:
    unknown = set(fields) - set(USER_FIELDS)
    if unknown:
        raise ValueError(f"Unknown user fields: {sorted(unknown)}")
