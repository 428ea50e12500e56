from __future__ import annotations

import asyncio
import time
from typing import Dict, List, Optional

from config.logging_config import log
from conversation.errors import SessionError
from conversation.models import (
    AgentStats,
    ConversationSession,
    FilterField,
    Step,
    TurnResult,
    TurnStatus,
    UserProfile,
)
from conversation.session_store import SessionStore
from database.base import FILTER_FIELDS, Repository
from scraping.agent import FetchCoordinator
from scraping.models import ListingRecord, SearchFilter
from scraping.utils import clean_text, leading_int, validate_email

PROPERTY_TYPES = ["Appartement", "Maison", "Studio", "Loft", "Chambre"]
MIN_CITY_LENGTH = 2

NUMERIC_STEPS = {
    Step.AWAITING_PRICE_MIN: "price_min",
    Step.AWAITING_PRICE_MAX: "price_max",
    Step.AWAITING_SURFACE_MIN: "surface_min",
    Step.AWAITING_SURFACE_MAX: "surface_max",
}


def filter_from_profile(location: str, user: Optional[UserProfile]) -> SearchFilter:
    if user is None:
        return SearchFilter(location_text=location)
    return SearchFilter(
        location_text=location,
        price_min=user.price_min,
        price_max=user.price_max,
        surface_min=user.surface_min,
        surface_max=user.surface_max,
        property_type=user.property_type,
    )


class ConversationAgent:
    """
    Entry point for the chat transport.

    Commands map to ``start``/``begin_*``/``reset_filters``; any other text goes
    through ``on_free_text``, which picks the transition for the user's current
    step. Everything returned is plain data; rendering is the caller's job.
    """

    def __init__(
        self,
        repository: Repository,
        sessions: SessionStore,
        coordinator: FetchCoordinator,
        default_alert_location: str = "Paris",
        alert_delay: float = 2.0,
    ):
        self.repository = repository
        self.sessions = sessions
        self.coordinator = coordinator
        self.default_alert_location = default_alert_location
        self.alert_delay = alert_delay
        self.started_at = time.monotonic()

    # -----------------------
    # Commands
    # -----------------------

    async def start(self, identity: str) -> UserProfile:
        await self._clear_session(identity)
        return await self.repository.ensure_user(identity)

    async def begin_search(self, identity: str) -> Optional[ConversationSession]:
        return await self._open_step(identity, Step.AWAITING_CITY)

    async def begin_alerts(self, identity: str) -> Optional[ConversationSession]:
        return await self._open_step(identity, Step.AWAITING_EMAIL)

    async def begin_filter(self, identity: str, field: FilterField) -> Optional[ConversationSession]:
        return await self._open_step(identity, field.step)

    async def reset_filters(self, identity: str) -> None:
        await self.repository.update_user(identity, **{f: None for f in FILTER_FIELDS})
        log.info(f"Filters reset for {identity}")

    # -----------------------
    # Inbound
    # -----------------------

    async def on_free_text(self, identity: str, text: str) -> TurnResult:
        session = await self.sessions.get(identity)
        if session is None:
            return TurnResult(status=TurnStatus.NO_SESSION)

        text = (text or "").strip()
        step = session.step
        log.debug(f"Free text from {identity} at step={step.value}")

        if step is Step.AWAITING_CITY:
            return await self._handle_city(session, text)
        if step is Step.AWAITING_EMAIL:
            return await self._handle_email(session, text)
        if step in NUMERIC_STEPS:
            return await self._handle_number(session, text, NUMERIC_STEPS[step])
        if step is Step.AWAITING_PROPERTY_TYPE:
            return await self._handle_property_type(session, text)

        await self._clear_session(identity)
        return TurnResult(status=TurnStatus.NO_SESSION)

    async def on_search_request(
        self,
        identity: str,
        location: str,
        search_filter: Optional[SearchFilter] = None,
    ) -> List[ListingRecord]:
        """Direct search; raises CoordinatorError when the scraper is saturated."""
        if search_filter is None:
            search_filter = filter_from_profile(location, await self._user(identity))

        listings = await self.coordinator.search(location, search_filter)

        try:
            await self.repository.log_search(identity, location, len(listings))
        except Exception as e:
            log.error(f"Could not record search for {identity}: {e}")
        return listings

    # -----------------------
    # Step handlers
    # -----------------------

    async def _handle_city(self, session: ConversationSession, text: str) -> TurnResult:
        city = clean_text(text)
        if len(city) < MIN_CITY_LENGTH:
            return self._invalid(session)

        await self._clear_session(session.identity)
        await self._save_user(session.identity, location=city)
        listings = await self.on_search_request(session.identity, city)
        return TurnResult(status=TurnStatus.SEARCHED, step=session.step, value=city, listings=listings)

    async def _handle_email(self, session: ConversationSession, text: str) -> TurnResult:
        if text.lower() == "off":
            await self._save_user(session.identity, email=None, notifications=False)
            value = None
        elif validate_email(text):
            await self._save_user(session.identity, email=text, notifications=True)
            value = text
        else:
            return self._invalid(session)

        await self._clear_session(session.identity)
        return TurnResult(status=TurnStatus.ACCEPTED, step=session.step, value=value)

    async def _handle_number(self, session: ConversationSession, text: str, field: str) -> TurnResult:
        value = leading_int(text)
        if value is None:
            return self._invalid(session)

        await self._save_user(session.identity, **{field: value})
        await self._clear_session(session.identity)
        return TurnResult(status=TurnStatus.ACCEPTED, step=session.step, value=value)

    async def _handle_property_type(self, session: ConversationSession, text: str) -> TurnResult:
        match = next((p for p in PROPERTY_TYPES if p.lower() == text.lower()), None)
        if match is None:
            return self._invalid(session)

        await self._save_user(session.identity, property_type=match)
        await self._clear_session(session.identity)
        return TurnResult(status=TurnStatus.ACCEPTED, step=session.step, value=match)

    @staticmethod
    def _invalid(session: ConversationSession) -> TurnResult:
        # session stays open, the user gets another try
        return TurnResult(status=TurnStatus.INVALID_INPUT, step=session.step, session=session)

    # -----------------------
    # Timer-driven jobs
    # -----------------------

    async def send_weekly_alerts(self) -> Dict[str, int]:
        """Search each subscriber's location; returns identity -> result count."""
        log.info("Running scheduled alert system")
        counts: Dict[str, int] = {}
        for user in await self.repository.users_with_alerts():
            location = user.location or self.default_alert_location
            try:
                listings = await self.coordinator.search(location, filter_from_profile(location, user))
                counts[user.identity] = len(listings)
            except Exception as e:
                log.error(f"Alert error for user {user.identity}: {e}")
            await asyncio.sleep(self.alert_delay)
        log.info(f"Weekly alerts done: {len(counts)} user(s) searched")
        return counts

    async def cleanup_expired_sessions(self) -> int:
        log.info("Running daily cleanup")
        return await self.sessions.purge_expired()

    async def stats(self, identity: str) -> AgentStats:
        user_searches, total_users, total_searches = await asyncio.gather(
            self.repository.count_searches(identity),
            self.repository.count_users(),
            self.repository.count_searches(),
        )
        return AgentStats(
            user_searches=user_searches,
            total_users=total_users,
            total_searches=total_searches,
            active_searches=self.coordinator.active_searches,
            max_concurrent_searches=self.coordinator.max_concurrency,
            uptime_hours=int((time.monotonic() - self.started_at) // 3600),
        )

    # -----------------------
    # Helpers
    # -----------------------

    async def _open_step(self, identity: str, step: Step) -> Optional[ConversationSession]:
        try:
            return await self.sessions.create_or_replace(identity, step)
        except SessionError:
            # conversation continues without state; already logged
            return None

    async def _clear_session(self, identity: str) -> None:
        try:
            await self.sessions.clear(identity)
        except SessionError:
            pass

    async def _save_user(self, identity: str, **fields) -> None:
        try:
            await self.repository.update_user(identity, **fields)
        except Exception as e:
            log.error(f"Could not update user {identity}: {e}")

    async def _user(self, identity: str) -> Optional[UserProfile]:
        try:
            return await self.repository.get_user(identity)
        except Exception as e:
            log.error(f"Get user data error for {identity}: {e}")
            return None
