from scraping.adapters.base import SourceAdapter
from scraping.adapters.registry import DEFAULT_RULES, SOURCE_RULES, resolve_rules
from scraping.adapters.rules import SelectorSet, SourceRules

__all__ = ["SourceAdapter", "SourceRules", "SelectorSet", "resolve_rules", "SOURCE_RULES", "DEFAULT_RULES"]
