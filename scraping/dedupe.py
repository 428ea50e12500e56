from typing import Iterable, List

from scraping.models import ListingRecord


def dedupe(records: Iterable[ListingRecord]) -> List[ListingRecord]:
    """Keep the first record for each (title, price, location), preserving order."""
    seen = set()
    out: List[ListingRecord] = []
    for record in records:
        key = record.identity
        if key in seen:
            continue
        seen.add(key)
        out.append(record)
    return out
