from __future__ import annotations

import asyncio
from itertools import islice
from typing import Iterator, List, Optional
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup, Tag

from config.logging_config import log
from scraping.adapters.registry import resolve_rules
from scraping.adapters.rules import SelectorSet
from scraping.errors import FetchError, FetchErrorKind
from scraping.models import ListingRecord, SearchFilter
from scraping.utils import absolute_url, clean_text, format_price, format_surface

MIN_TITLE_LENGTH = 6
MAX_IMAGES = 2
_IMAGE_ATTRS = ("src", "data-src", "data-lazy")
_IMAGE_SKIP = ("placeholder", "loading")


class SourceAdapter:
    """Fetch + extract unit for a single catalog.

    The rule set (query parameters and selectors) is resolved once from the
    base URL; unknown hosts get the generic rules.
    """

    def __init__(
        self,
        base_url: str,
        timeout_s: float = 15.0,
        max_results: int = 10,
        user_agent: str = "Mozilla/5.0",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.source_id = urlparse(self.base_url).hostname or self.base_url
        self.rules = resolve_rules(self.base_url)
        self.timeout_s = timeout_s
        self.max_results = max_results

        self._headers = {
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "fr-FR,fr;q=0.9,en;q=0.8",
            "DNT": "1",
            "Cache-Control": "no-cache",
        }

        self.client = httpx.AsyncClient(
            headers=self._headers,
            timeout=httpx.Timeout(self.timeout_s),
            follow_redirects=True,
            transport=transport,
        )

    async def close(self):
        await self.client.aclose()

    def search_url(self, location: str, search_filter: SearchFilter) -> str:
        return self.rules.build_search_url(self.base_url, location, search_filter)

    async def fetch_candidates(self, location: str, search_filter: SearchFilter) -> List[ListingRecord]:
        url = self.search_url(location, search_filter)
        log.debug(f"[{self.source_id}] GET {url}")
        html = await self.fetch(url)
        try:
            return list(islice(self.iter_candidates(html, url), self.max_results))
        except Exception as e:
            raise FetchError(FetchErrorKind.PARSE_FAILURE, str(e)) from e

    # -----------------------
    # HTTP
    # -----------------------

    async def fetch(self, url: str) -> str:
        try:
            r = await asyncio.wait_for(self.client.get(url), timeout=self.timeout_s)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise FetchError(FetchErrorKind.TIMEOUT, f"no response from {url} within {self.timeout_s}s") from e
        except httpx.HTTPError as e:
            raise FetchError(FetchErrorKind.NETWORK_FAILURE, str(e)) from e

        if not r.is_success:
            raise FetchError(FetchErrorKind.HTTP_STATUS, r.reason_phrase, code=r.status_code)
        return r.text

    # -----------------------
    # Extraction
    # -----------------------

    def iter_candidates(self, html: str, page_url: str) -> Iterator[ListingRecord]:
        """Lazily yield listings found in a result page."""
        soup = BeautifulSoup(html, "lxml")
        doc_base = self._document_base(soup)
        selectors = self.rules.selectors

        for el in soup.css.iselect(selectors.container):
            listing = self._extract(el, selectors, doc_base, page_url)
            if listing is not None:
                yield listing

    def _document_base(self, soup: BeautifulSoup) -> str:
        base = soup.find("base", href=True)
        if base:
            return absolute_url(base["href"], self.base_url + "/")
        return self.base_url + "/"

    def _extract(self, el: Tag, selectors: SelectorSet, doc_base: str, page_url: str) -> Optional[ListingRecord]:
        title = clean_text(self._text(el, selectors.title))
        if len(title) < MIN_TITLE_LENGTH:
            return None

        href = el.get("href") if el.name == "a" else None
        if not href:
            link = el.select_one(selectors.url)
            href = link.get("href") if link else None

        return ListingRecord(
            title=title,
            price=format_price(self._text(el, selectors.price)),
            location=clean_text(self._text(el, selectors.location)),
            surface=format_surface(clean_text(self._text(el, selectors.surface))),
            description=clean_text(self._text(el, selectors.description)),
            url=absolute_url(href, doc_base) if href else page_url,
            images=self._images(el, doc_base),
            source_id=self.source_id,
        )

    @staticmethod
    def _text(el: Tag, selector: str) -> str:
        node = el.select_one(selector)
        return node.get_text(" ", strip=True) if node else ""

    @staticmethod
    def _images(el: Tag, doc_base: str) -> List[str]:
        out: List[str] = []
        for img in el.find_all("img"):
            src = next((img.get(a) for a in _IMAGE_ATTRS if img.get(a)), None)
            if not src or any(s in src for s in _IMAGE_SKIP):
                continue
            out.append(absolute_url(src, doc_base))
            if len(out) >= MAX_IMAGES:
                break
        return out
