import re
from typing import Optional
from urllib.parse import parse_qs, urlparse

from bs4 import BeautifulSoup


def normalize_text(s: str) -> str:
    return " ".join(s.strip().lower().split())


def clean_str(value) -> Optional[str]:
    """Trimmed string, or None for missing/blank values."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def normalize_email(email: Optional[str]) -> Optional[str]:
    email = clean_str(email)
    return email.lower() if email else None


COMPANY_SUFFIXES = {"inc", "inc.", "llc", "ltd", "ltd.", "corp", "corp.", "co", "co.", "gmbh", "plc", "limited"}


def normalize_company(company: str) -> str:
    words = normalize_text(company).replace(",", " ").split()
    while len(words) > 1 and words[-1] in COMPANY_SUFFIXES:
        words.pop()
    return " ".join(words)


def companies_differ(a: Optional[str], b: Optional[str]) -> bool:
    """True only when both companies are known and name different employers."""
    a, b = clean_str(a), clean_str(b)
    if not a or not b:
        return False
    return normalize_company(a) != normalize_company(b)


def canonical_url(url: str) -> str:
    parsed = urlparse(url)
    path = parsed.path.rstrip("/")
    # Drop query and fragment so tracking parameters don't split identities
    return f"{parsed.scheme}://{parsed.netloc.lower()}{path}" if parsed.scheme and parsed.netloc else path


_LINKEDIN_PATH = re.compile(r"^/(?:in|pub)/([^/?#]+)", re.IGNORECASE)


def normalize_profile_handle(handle: Optional[str]) -> Optional[str]:
    """Canonical form of a profile URL, used for identity comparison.

    LinkedIn URLs (``/in/<slug>``, ``/pub/<slug>``, ``profile/view?id=<slug>``,
    with or without scheme and ``www``) collapse to
    ``https://www.linkedin.com/in/<slug>/``. Other URLs lose their query,
    fragment and trailing slash.
    """
    handle = clean_str(handle)
    if not handle:
        return None
    if "://" not in handle and ("linkedin.com" in handle.lower() or "." in handle.split("/")[0]):
        handle = "https://" + handle
    parsed = urlparse(handle)
    host = parsed.netloc.lower()
    if host.endswith("linkedin.com"):
        slug = None
        m = _LINKEDIN_PATH.match(parsed.path)
        if m:
            slug = m.group(1)
        elif parsed.path.rstrip("/").endswith("/profile/view"):
            slug = (parse_qs(parsed.query).get("id") or [None])[0]
        if slug:
            return f"https://www.linkedin.com/in/{slug.lower()}/"
    return canonical_url(handle)


def strip_html(text: Optional[str]) -> Optional[str]:
    """Plain text from provider fields that sometimes carry markup."""
    text = clean_str(text)
    if not text:
        return None
    if "<" not in text:
        return text
    plain = BeautifulSoup(text, "html.parser").get_text(" ", strip=True)
    return " ".join(plain.split()) or None
