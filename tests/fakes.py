import asyncio
from datetime import datetime, timedelta, timezone

from scraping.models import ListingRecord


def make_listing(title="Appartement lumineux", price="950€/mois", location="Paris 11e",
                 url="https://www.leboncoin.fr/ad/1", source_id="www.leboncoin.fr") -> ListingRecord:
    return ListingRecord(title=title, price=price, location=location, url=url, source_id=source_id)


class FakeAdapter:
    def __init__(self, source_id, records=(), error=None, gate=None, failures=()):
        self.source_id = source_id
        self.records = list(records)
        self.error = error
        self.gate = gate
        self.failures = list(failures)
        self.calls = []

    async def fetch_candidates(self, location, search_filter):
        self.calls.append((location, search_filter))
        if self.gate is not None:
            await self.gate.wait()
        if self.failures:
            raise self.failures.pop(0)
        if self.error is not None:
            raise self.error
        return list(self.records)


class Clock:
    def __init__(self, now=None):
        self.now = now or datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


async def no_sleep(delay):
    await asyncio.sleep(0)
