import asyncio
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from scraping.adapters import DEFAULT_RULES, SOURCE_RULES, SelectorSet, SourceAdapter, SourceRules, resolve_rules
from scraping.adapters import generic
from scraping.errors import FetchError, FetchErrorKind
from scraping.models import SearchFilter

LEBONCOIN_PAGE = """
<html><body>
<a data-qa-id="aditem_container" href="/ad/locations/101.htm">
  <span data-qa-id="aditem_title">  Studio   meublé proche métro </span>
  <span data-qa-id="aditem_price">950 € par mois</span>
  <span data-qa-id="aditem_location">Paris 75011</span>
  <img src="/img/placeholder.png">
  <img src="/img/101-a.jpg">
  <img data-src="https://img.leboncoin.fr/101-b.jpg">
  <img src="/img/101-c.jpg">
</a>
<a data-qa-id="aditem_container" href="/ad/locations/102.htm">
  <span data-qa-id="aditem_title">T2</span>
  <span data-qa-id="aditem_price">700 €</span>
</a>
<a data-qa-id="aditem_container" href="https://www.leboncoin.fr/ad/locations/103.htm">
  <span data-qa-id="aditem_title">Chambre chez l'habitant</span>
  <span data-qa-id="aditem_price">prix sur demande</span>
  <span data-qa-id="aditem_location">Paris 75013</span>
</a>
</body></html>
"""

GENERIC_PAGE = """
<html><head><base href="https://static.pap.fr/annonces/"></head><body>
<article>
  <h2>Appartement 3 pièces Lyon 7e</h2>
  <div class="price">1.200,50€</div>
  <div class="city">Lyon</div>
  <div class="surface">Surface : 64,50 m2</div>
  <div class="description">Bel   appartement
     traversant, proche des quais.</div>
  <a href="r4001">voir</a>
  <img data-lazy="img/4001.jpg">
</article>
<article>
  <h3>Maison avec jardin</h3>
  <span class="prix">1450 €</span>
</article>
</body></html>
"""


def make_adapter(base_url, handler, **kwargs):
    return SourceAdapter(base_url, transport=httpx.MockTransport(handler), **kwargs)


def html_handler(body, seen=None):
    def handler(request):
        if seen is not None:
            seen.append(request)
        return httpx.Response(200, text=body)
    return handler


def fetch(adapter, location="Paris", **filters):
    async def go():
        try:
            return await adapter.fetch_candidates(location, SearchFilter(location_text=location, **filters))
        finally:
            await adapter.close()
    return asyncio.run(go())


def test_rules_resolved_from_hostname():
    assert resolve_rules("https://www.leboncoin.fr") is SOURCE_RULES["leboncoin"]
    assert resolve_rules("https://www.seloger.com") is SOURCE_RULES["seloger"]
    assert resolve_rules("https://www.pap.fr") is DEFAULT_RULES


def test_leboncoin_search_url():
    adapter = SourceAdapter("https://www.leboncoin.fr")
    url = adapter.search_url("Paris", SearchFilter(location_text="Paris", price_min=500))
    parts = urlsplit(url)
    assert parts.path == "/annonces/offres/locations/"
    assert parse_qs(parts.query) == {"locations": ["Paris"], "category": ["10"], "price": ["500-max"]}


def test_seloger_search_url():
    adapter = SourceAdapter("https://www.seloger.com")
    url = adapter.search_url("Lyon", SearchFilter(location_text="Lyon", price_min=400, price_max=800))
    parts = urlsplit(url)
    assert parts.path == "/list.htm"
    assert parse_qs(parts.query) == {"localisationIds": ["Lyon"], "typeTransaction": ["1"], "prix": ["400/800"]}

    plain = adapter.search_url("Lyon", SearchFilter(location_text="Lyon"))
    assert "prix" not in parse_qs(urlsplit(plain).query)


def test_generic_search_url_forwards_every_filter():
    adapter = SourceAdapter("https://www.pap.fr")
    url = adapter.search_url(
        "Nantes",
        SearchFilter(location_text="Nantes", price_min=0, surface_min=20, property_type="Studio"),
    )
    parts = urlsplit(url)
    assert parts.path == "/search/"
    assert parse_qs(parts.query) == {
        "location": ["Nantes"],
        "priceMin": ["0"],
        "surfaceMin": ["20"],
        "propertyType": ["Studio"],
    }


def test_leboncoin_extraction():
    seen = []
    listings = fetch(make_adapter("https://www.leboncoin.fr", html_handler(LEBONCOIN_PAGE, seen)))

    assert [l.title for l in listings] == ["Studio meublé proche métro", "Chambre chez l'habitant"]
    first, second = listings
    assert first.price == "950€/mois"
    assert first.location == "Paris 75011"
    assert first.url == "https://www.leboncoin.fr/ad/locations/101.htm"
    assert first.images == ["https://www.leboncoin.fr/img/101-a.jpg", "https://img.leboncoin.fr/101-b.jpg"]
    assert first.source_id == "www.leboncoin.fr"
    assert second.price == "prix sur demande"
    assert second.images == []

    request = seen[0]
    assert request.headers["User-Agent"]
    assert request.headers["Accept-Language"].startswith("fr-FR")


def test_generic_extraction_uses_document_base():
    listings = fetch(make_adapter("https://www.pap.fr", html_handler(GENERIC_PAGE)), location="Lyon")

    assert len(listings) == 2
    first = listings[0]
    assert first.title == "Appartement 3 pièces Lyon 7e"
    assert first.price == "1.20€/mois"
    assert first.location == "Lyon"
    assert first.surface == "64,50m²"
    assert first.description == "Bel appartement traversant, proche des quais."
    assert first.url == "https://static.pap.fr/annonces/r4001"
    assert first.images == ["https://static.pap.fr/annonces/img/4001.jpg"]

    # no link: falls back to the search page
    assert listings[1].url.startswith("https://www.pap.fr/search/?")
    assert listings[1].price == "1450€/mois"
    assert listings[1].surface == ""


def test_extraction_stops_at_result_cap():
    items = "".join(
        f'<article><h2>Logement numéro {i}</h2><a href="/a/{i}">x</a></article>' for i in range(20)
    )
    page = f"<html><body>{items}</body></html>"
    listings = fetch(make_adapter("https://www.pap.fr", html_handler(page), max_results=3))
    assert [l.url for l in listings] == [f"https://www.pap.fr/a/{i}" for i in range(3)]


def test_http_status_error():
    adapter = make_adapter("https://www.seloger.com", lambda request: httpx.Response(503))
    with pytest.raises(FetchError) as exc_info:
        fetch(adapter)
    assert exc_info.value.kind is FetchErrorKind.HTTP_STATUS
    assert exc_info.value.code == 503


def test_transport_timeout():
    def handler(request):
        raise httpx.ReadTimeout("read timed out", request=request)

    with pytest.raises(FetchError) as exc_info:
        fetch(make_adapter("https://www.pap.fr", handler))
    assert exc_info.value.kind is FetchErrorKind.TIMEOUT


def test_hard_timeout_on_slow_response():
    async def handler(request):
        await asyncio.sleep(1)
        return httpx.Response(200, text=GENERIC_PAGE)

    with pytest.raises(FetchError) as exc_info:
        fetch(make_adapter("https://www.pap.fr", handler, timeout_s=0.05))
    assert exc_info.value.kind is FetchErrorKind.TIMEOUT


def test_network_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(FetchError) as exc_info:
        fetch(make_adapter("https://www.pap.fr", handler))
    assert exc_info.value.kind is FetchErrorKind.NETWORK_FAILURE


def test_unparseable_selector_is_a_parse_failure():
    adapter = make_adapter("https://www.pap.fr", html_handler(GENERIC_PAGE))
    adapter.rules = SourceRules(
        name="broken",
        selectors=SelectorSet(container="[[", title="h2", price=".price", location=".city", url="a"),
        build_search_url=generic.build_search_url,
    )

    with pytest.raises(FetchError) as exc_info:
        fetch(adapter)
    assert exc_info.value.kind is FetchErrorKind.PARSE_FAILURE
