from datetime import timedelta
from typing import Optional

from config.settings import Settings, settings as default_settings
from conversation.agent import ConversationAgent
from conversation.session_store import SessionStore
from database.base import Repository
from database.memory_store import MemoryStore
from database.postgres_store import PostgresStore
from scraping.adapters import SourceAdapter
from scraping.agent import FetchCoordinator


def build_coordinator(cfg: Settings = default_settings) -> FetchCoordinator:
    adapters = [
        SourceAdapter(
            url,
            timeout_s=cfg.SCRAPE_TIMEOUT,
            max_results=cfg.MAX_RESULTS_PER_QUERY,
            user_agent=cfg.USER_AGENT,
        )
        for url in cfg.SOURCES
    ]
    return FetchCoordinator(
        adapters,
        max_concurrency=cfg.MAX_CONCURRENT_SCRAPES,
        max_results=cfg.MAX_RESULTS_PER_QUERY,
        max_attempts=cfg.MAX_RETRY_ATTEMPTS,
        base_delay=cfg.RETRY_BASE_DELAY,
        sources_per_search=cfg.SOURCES_PER_SEARCH,
    )


async def build_repository(cfg: Settings = default_settings, in_memory: bool = False) -> Repository:
    if in_memory:
        return MemoryStore()
    store = PostgresStore(cfg.DATABASE_URL)
    await store.setup_schema()
    return store


def build_agent(
    repository: Repository,
    cfg: Settings = default_settings,
    coordinator: Optional[FetchCoordinator] = None,
) -> ConversationAgent:
    sessions = SessionStore(repository, ttl=timedelta(seconds=cfg.SESSION_TTL_SECONDS))
    return ConversationAgent(
        repository,
        sessions,
        coordinator or build_coordinator(cfg),
        default_alert_location=cfg.DEFAULT_ALERT_LOCATION,
        alert_delay=cfg.ALERT_DELAY,
    )
