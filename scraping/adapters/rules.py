from dataclasses import dataclass
from typing import Callable

from scraping.models import SearchFilter

DESCRIPTION_SELECTOR = ".description, .desc, .details"
SURFACE_SELECTOR = '.surface, .area, .superficie, [class*="surface"]'


@dataclass(frozen=True)
class SelectorSet:
    container: str
    title: str
    price: str
    location: str
    url: str
    description: str = DESCRIPTION_SELECTOR
    surface: str = SURFACE_SELECTOR


@dataclass(frozen=True)
class SourceRules:
    """Query-building and extraction rules for one catalog."""
    name: str
    selectors: SelectorSet
    build_search_url: Callable[[str, str, SearchFilter], str]


def price_range(f: SearchFilter, sep: str):
    if f.price_min is None and f.price_max is None:
        return None
    low = f.price_min if f.price_min is not None else "min"
    high = f.price_max if f.price_max is not None else "max"
    return f"{low}{sep}{high}"
