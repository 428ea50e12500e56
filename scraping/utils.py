import re
from typing import Optional
from urllib.parse import urljoin

MAX_TEXT_LENGTH = 200

# digits, optionally followed by "." or "," and exactly two decimals
_AMOUNT = r"(\d+(?:[.,]\d{2})?)"
_PRICE_RE = re.compile(_AMOUNT)
_SURFACE_RE = re.compile(_AMOUNT + r"\s*m²?")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def clean_text(s: Optional[str]) -> str:
    if not s:
        return ""
    return " ".join(s.split())[:MAX_TEXT_LENGTH]

def format_price(text: Optional[str]) -> str:
    """
    First numeric token rendered as a monthly rent:
      "950€ par mois"    -> "950€/mois"
      "prix sur demande" -> "prix sur demande"
    """
    if not text:
        return ""
    m = _PRICE_RE.search(text)
    return f"{m.group(1)}€/mois" if m else text.strip()

def format_surface(text: Optional[str]) -> str:
    if not text:
        return ""
    m = _SURFACE_RE.search(text)
    return f"{m.group(1)}m²" if m else text.strip()

def absolute_url(href: str, base_url: str) -> str:
    href = href.strip()
    if href.startswith(("http://", "https://")):
        return href
    return urljoin(base_url, href)

def validate_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email or ""))

def leading_int(text: str) -> Optional[int]:
    m = re.match(r"\s*(\d+)", text or "")
    return int(m.group(1)) if m else None
