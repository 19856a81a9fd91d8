"""Domain normalization utilities."""

from __future__ import annotations

import re
from typing import Iterable
from urllib.parse import urlparse

# Two-label public suffixes that need three labels to name a registrable domain.
COMPOUND_TLDS: frozenset[str] = frozenset(
    {
        "com.br",
        "com.ar",
        "com.mx",
        "com.au",
        "co.uk",
        "co.jp",
        "co.kr",
        "co.za",
        "com.sg",
        "com.my",
        "org.br",
        "net.br",
        "gov.br",
        "edu.br",
        "mil.br",
        "ac.uk",
        "org.uk",
        "gov.uk",
        "co.in",
        "net.in",
        "org.in",
        "gov.in",
        "ac.in",
    }
)

# Domains that are clearly legitimate; analysis short-circuits on them.
KNOWN_DOMAINS: frozenset[str] = frozenset(
    {
        "google.com",
        "youtube.com",
        "gmail.com",
        "facebook.com",
        "instagram.com",
        "whatsapp.com",
        "amazon.com",
        "microsoft.com",
        "apple.com",
        "netflix.com",
        "spotify.com",
        "paypal.com",
        "github.com",
        "stackoverflow.com",
        "reddit.com",
        "wikipedia.org",
        "twitter.com",
        "linkedin.com",
    }
)

_SCHEME_RE = re.compile(r"^https?://")
_HOST_END_RE = re.compile(r"[/?#:]")
_DOMAIN_RE = re.compile(
    r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?(\.[a-z0-9]([a-z0-9-]*[a-z0-9])?)*$",
    re.IGNORECASE,
)


def ensure_url(value: str) -> str:
    """Return value with an https:// scheme when it has none."""
    raw = (value or "").strip()
    if not raw or "://" in raw:
        return raw
    return f"https://{raw}"


def extract_hostname(value: str) -> str:
    """
    Extract the hostname from a URL or bare host.

    Falls back to the raw (stripped) input when it cannot be parsed as a URL.
    """
    raw = (value or "").strip()
    if not raw:
        return ""
    try:
        host = urlparse(ensure_url(raw)).hostname
    except ValueError:
        host = None
    return host or raw


def canonicalize_host(value: str) -> str:
    """
    Normalize a domain/URL to a canonical host key.

    - Lowercase
    - Strip leading "www."
    - Drop port, path, query and fragment
    """
    host = extract_hostname(value).lower()
    host = _HOST_END_RE.split(host, 1)[0].strip(".")
    if host.startswith("www.") and len(host) > 4:
        host = host[4:]
    return host


def normalize_domain(value: str, compound_tlds: Iterable[str] | None = None) -> str:
    """
    Reduce a URL or host to its registrable domain.

    "https://accounts.google.com/a?x=1" -> "google.com"
    "www.site.com.br/page" -> "site.com.br"
    """
    tlds = COMPOUND_TLDS if compound_tlds is None else compound_tlds

    clean = (value or "").strip().lower()
    clean = _SCHEME_RE.sub("", clean)
    if clean.startswith("www."):
        clean = clean[4:]
    clean = _HOST_END_RE.split(clean, 1)[0]

    parts = clean.split(".")
    if len(parts) < 2:
        return clean

    last_two = ".".join(parts[-2:])
    if last_two in tlds:
        return ".".join(parts[-3:])
    return last_two


def is_valid_domain(domain: str, compound_tlds: Iterable[str] | None = None) -> bool:
    """Check that the registrable form of domain looks like a real ASCII domain."""
    main_domain = normalize_domain(domain, compound_tlds)
    if not main_domain or len(main_domain) < 3:
        return False
    if "." not in main_domain:
        return False
    if main_domain.startswith(".") or main_domain.endswith("."):
        return False
    return bool(_DOMAIN_RE.match(main_domain))


def is_known_domain(
    domain: str,
    known_domains: Iterable[str] | None = None,
    compound_tlds: Iterable[str] | None = None,
) -> bool:
    """Check if a domain (or one of its parents) is on the known-legitimate list."""
    known = KNOWN_DOMAINS if known_domains is None else known_domains
    if not isinstance(known, (set, frozenset)):
        known = set(known)

    host = canonicalize_host(domain)
    if not host:
        return False
    if host in known or normalize_domain(host, compound_tlds) in known:
        return True
    return any(host.endswith(f".{entry}") for entry in known)
