# Fallback for catalogs without dedicated rules (pap.fr and friends).
from urllib.parse import urlencode

from scraping.adapters.rules import SelectorSet, SourceRules
from scraping.models import SearchFilter

SELECTORS = SelectorSet(
    container=".ad, .annonce, .listing, .property, .card, .item, .result, article",
    title=".title, h2, h3, .name, .ad-title, .property-title",
    price='.price, .prix, .cost, [class*="price"]',
    location=".location, .address, .city, .lieu",
    url="a",
)

# filter field -> query parameter
FILTER_PARAMS = {
    "price_min": "priceMin",
    "price_max": "priceMax",
    "surface_min": "surfaceMin",
    "surface_max": "surfaceMax",
    "property_type": "propertyType",
}

def build_search_url(base_url: str, location: str, f: SearchFilter) -> str:
    params = [("location", location)]
    for field, param in FILTER_PARAMS.items():
        value = getattr(f, field)
        if value is not None and value != "":
            params.append((param, value))
    return f"{base_url.rstrip('/')}/search/?{urlencode(params)}"

RULES = SourceRules(name="default", selectors=SELECTORS, build_search_url=build_search_url)
