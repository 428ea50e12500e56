from scraping.dedupe import dedupe
from tests.fakes import make_listing


def sample():
    return [
        make_listing(title="Studio Montmartre", url="https://a/1"),
        make_listing(title="T2 Bastille", url="https://a/2"),
        make_listing(title="Studio Montmartre", url="https://mirror/1"),
        make_listing(title="T2 Bastille", price="1000€/mois", url="https://a/3"),
        make_listing(title="T2 Bastille", url="https://a/4"),
    ]


def test_dedupe_keeps_first_seen_order():
    out = dedupe(sample())
    assert [l.url for l in out] == ["https://a/1", "https://a/2", "https://a/3"]


def test_dedupe_ignores_url():
    a = make_listing(url="https://www.leboncoin.fr/ad/1")
    b = make_listing(url="https://www.seloger.com/annonces/1")
    assert dedupe([a, b]) == [a]


def test_dedupe_is_idempotent_and_never_grows():
    records = sample()
    once = dedupe(records)
    assert dedupe(once) == once
    assert len(once) <= len(records)
    assert dedupe([]) == []
