"""Centralized constants for urlsentry.

Enums shared by the analyzers, the verdict composer and the CLI live here
so severity comparisons stay consistent across modules.
"""

from enum import Enum, IntEnum


class Verdict(IntEnum):
    """Three-tier classification of a URL, ordered by severity."""

    NOT_SUSPICIOUS = 1
    SUSPICIOUS = 2
    DANGEROUS = 3

    @classmethod
    def from_string(cls, value: str | None) -> "Verdict":
        """Convert string verdict to enum, defaulting to NOT_SUSPICIOUS."""
        if not value:
            return cls.NOT_SUSPICIOUS
        mapping = {
            "not_suspicious": cls.NOT_SUSPICIOUS,
            "suspicious": cls.SUSPICIOUS,
            "dangerous": cls.DANGEROUS,
        }
        return mapping.get(value.strip().lower().replace("-", "_"), cls.NOT_SUSPICIOUS)

    def __str__(self) -> str:
        return self.name.lower().replace("_", "-")


class Severity(IntEnum):
    """Severity of a single security issue."""

    LOW = 1
    MEDIUM = 2
    HIGH = 3

    @classmethod
    def from_string(cls, value: str | None) -> "Severity":
        """Convert string severity to enum, defaulting to LOW."""
        if not value:
            return cls.LOW
        mapping = {
            "low": cls.LOW,
            "medium": cls.MEDIUM,
            "high": cls.HIGH,
        }
        return mapping.get(value.lower(), cls.LOW)

    def __str__(self) -> str:
        return self.name.lower()


class IssueType(str, Enum):
    """Kinds of issues raised by the analysis rules."""

    DOMAIN_SIMILARITY = "domain-similarity"
    MIXED_SCRIPTS = "mixed-scripts"
    HOMOGLYPH_ATTACK = "homoglyph-attack"
    INVALID_PUNYCODE = "invalid-punycode"
    SHORTENED_URL = "shortened-url"
    DOMAIN_IMITATION = "domain-imitation"
    REPUTATION = "reputation"
    VERIFICATION_UNAVAILABLE = "verification-unavailable"

    def __str__(self) -> str:
        return self.value


def highest_severity(severities) -> Severity:
    """Return the highest severity in an iterable, LOW when empty."""
    return max(severities, default=Severity.LOW)


# URL shortening services; their links hide the real destination.
DEFAULT_SHORTENERS: tuple[str, ...] = (
    "bit.ly",
    "tinyurl.com",
    "t.co",
    "goo.gl",
    "ow.ly",
    "is.gd",
    "buff.ly",
    "rebrand.ly",
)

# Frequently imitated brands, by their registrable domain.
DEFAULT_BRANDS: tuple[str, ...] = (
    "google.com",
    "facebook.com",
    "amazon.com",
    "microsoft.com",
    "apple.com",
    "paypal.com",
    "netflix.com",
    "instagram.com",
    "twitter.com",
    "linkedin.com",
    "youtube.com",
)
