from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from scraping.models import ListingRecord

Primitive = Union[str, int, float, bool, None]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Step(str, Enum):
    AWAITING_CITY = "awaiting_city"
    AWAITING_EMAIL = "awaiting_email"
    AWAITING_PRICE_MIN = "awaiting_price_min"
    AWAITING_PRICE_MAX = "awaiting_price_max"
    AWAITING_SURFACE_MIN = "awaiting_surface_min"
    AWAITING_SURFACE_MAX = "awaiting_surface_max"
    AWAITING_PROPERTY_TYPE = "awaiting_property_type"


class FilterField(str, Enum):
    PRICE_MIN = "price_min"
    PRICE_MAX = "price_max"
    SURFACE_MIN = "surface_min"
    SURFACE_MAX = "surface_max"
    PROPERTY_TYPE = "property_type"

    @property
    def step(self) -> Step:
        return Step(f"awaiting_{self.value}")


class ConversationSession(BaseModel):
    model_config = ConfigDict(frozen=True)

    identity: str
    step: Step
    payload: Dict[str, Primitive] = Field(default_factory=dict)
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


class UserProfile(BaseModel):
    identity: str
    email: Optional[str] = None
    location: Optional[str] = None
    price_min: Optional[int] = None
    price_max: Optional[int] = None
    surface_min: Optional[int] = None
    surface_max: Optional[int] = None
    property_type: Optional[str] = None
    notifications: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    last_active: datetime = Field(default_factory=utcnow)


class SearchEvent(BaseModel):
    identity: str
    query: str
    results: int
    created_at: datetime = Field(default_factory=utcnow)


class TurnStatus(str, Enum):
    NO_SESSION = "no_session"
    ACCEPTED = "accepted"
    INVALID_INPUT = "invalid_input"
    SEARCHED = "searched"


class TurnResult(BaseModel):
    """Outcome of one free-text message, for the presentation layer to render."""
    status: TurnStatus
    step: Optional[Step] = None
    value: Primitive = None
    listings: List[ListingRecord] = Field(default_factory=list)
    session: Optional[ConversationSession] = None


class AgentStats(BaseModel):
    user_searches: int = 0
    total_users: int = 0
    total_searches: int = 0
    active_searches: int = 0
    max_concurrent_searches: int = 0
    uptime_hours: int = 0
