from urllib.parse import urlencode

from scraping.adapters.rules import SelectorSet, SourceRules, price_range
from scraping.models import SearchFilter

REAL_ESTATE_CATEGORY = "10"

SELECTORS = SelectorSet(
    container='[data-qa-id="aditem_container"]',
    title='[data-qa-id="aditem_title"]',
    price='[data-qa-id="aditem_price"]',
    location='[data-qa-id="aditem_location"]',
    surface='[data-qa-id="aditem_surface"], [data-test-id="surface"]',
    url='a[data-qa-id="aditem_container"]',
)

def build_search_url(base_url: str, location: str, f: SearchFilter) -> str:
    params = [("locations", location), ("category", REAL_ESTATE_CATEGORY)]
    price = price_range(f, "-")
    if price:
        params.append(("price", price))
    return f"{base_url.rstrip('/')}/annonces/offres/locations/?{urlencode(params)}"

RULES = SourceRules(name="leboncoin", selectors=SELECTORS, build_search_url=build_search_url)
