import asyncio
from contextlib import contextmanager
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence

from config.logging_config import log
from scraping.dedupe import dedupe
from scraping.errors import CoordinatorError, CoordinatorErrorKind
from scraping.models import ListingRecord, SearchFilter
from scraping.retry import with_retry


class CandidateSource(Protocol):
    source_id: str

    async def fetch_candidates(self, location: str, search_filter: SearchFilter) -> List[ListingRecord]:
        ...


class FetchCoordinator:
    """Fans a search out to the configured sources under a global admission gate."""

    def __init__(
        self,
        adapters: Sequence[CandidateSource],
        max_concurrency: int = 3,
        max_results: int = 10,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        sources_per_search: int = 2,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.adapters = list(adapters)
        self.max_concurrency = max_concurrency
        self.max_results = max_results
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.sources_per_search = sources_per_search
        self._sleep = sleep or asyncio.sleep
        self._active = 0

    @property
    def active_searches(self) -> int:
        return self._active

    @contextmanager
    def _admission(self):
        # check and increment without a suspension point in between
        if self._active >= self.max_concurrency:
            raise CoordinatorError(
                CoordinatorErrorKind.CONCURRENCY_LIMIT_EXCEEDED,
                f"Maximum concurrent scrapes reached ({self.max_concurrency})",
            )
        self._active += 1
        try:
            yield
        finally:
            self._active -= 1

    async def search(self, location: str, search_filter: Optional[SearchFilter] = None) -> List[ListingRecord]:
        search_filter = search_filter or SearchFilter(location_text=location)

        with self._admission():
            log.info(f"Starting scrape for {location} ({self._active}/{self.max_concurrency} active)")
            sources = self.adapters[: self.sources_per_search]

            results = await asyncio.gather(
                *(self._fetch_one(adapter, location, search_filter) for adapter in sources),
                return_exceptions=True,
            )

            listings: List[ListingRecord] = []
            for adapter, result in zip(sources, results):
                if isinstance(result, BaseException):
                    log.warning(f"[{adapter.source_id}] scraping failed: {result}")
                    continue
                listings.extend(r for r in result if r.title)

            out = dedupe(listings[: self.max_results])
            log.info(f"Scrape for {location}: collected={len(listings)} returned={len(out)}")
            return out

    async def _fetch_one(self, adapter: CandidateSource, location: str, search_filter: SearchFilter) -> List[ListingRecord]:
        return await with_retry(
            lambda: adapter.fetch_candidates(location, search_filter),
            self.max_attempts,
            self.base_delay,
            label=adapter.source_id,
            sleep=self._sleep,
        )

    async def close(self):
        for adapter in self.adapters:
            close = getattr(adapter, "close", None)
            if close is not None:
                await close()
