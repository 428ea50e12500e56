from urllib.parse import urlencode

from scraping.adapters.rules import SelectorSet, SourceRules, price_range
from scraping.models import SearchFilter

RENTAL_TRANSACTION = "1"

SELECTORS = SelectorSet(
    container=".c-pa-list",
    title=".c-pa-link",
    price=".c-pa-price",
    location=".c-pa-city",
    surface=".c-pa-criterion em",
    url=".c-pa-link",
)

def build_search_url(base_url: str, location: str, f: SearchFilter) -> str:
    params = [("localisationIds", location), ("typeTransaction", RENTAL_TRANSACTION)]
    price = price_range(f, "/")
    if price:
        params.append(("prix", price))
    return f"{base_url.rstrip('/')}/list.htm?{urlencode(params)}"

RULES = SourceRules(name="seloger", selectors=SELECTORS, build_search_url=build_search_url)
