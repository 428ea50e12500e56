from urllib.parse import urlparse

from scraping.adapters import generic, leboncoin, seloger
from scraping.adapters.rules import SourceRules

SOURCE_RULES = {
    "leboncoin": leboncoin.RULES,
    "seloger": seloger.RULES,
}
DEFAULT_RULES = generic.RULES


def resolve_rules(base_url: str) -> SourceRules:
    """Pick the rule set whose key appears in the catalog hostname."""
    host = urlparse(base_url).hostname or ""
    for key, rules in SOURCE_RULES.items():
        if key in host:
            return rules
    return DEFAULT_RULES
