"""
Lexical analysis of URL hostnames.

Looks at how a hostname is spelled: which Unicode scripts it mixes, which
characters imitate Latin letters, and whether its Punycode labels are
well formed. The result is a plain value object; analyzing the same input
twice yields equal results.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..utils.domains import extract_hostname
from ..utils.punycode import PunycodeError, has_ace_label, is_valid_punycode, to_unicode
from .homoglyphs import lookup_homoglyph
from .scripts import Script, detect_script

logger = logging.getLogger(__name__)

# Script-neutral characters that never count towards script mixing.
NEUTRAL_CHARS = frozenset(".-_0123456789")

CONTEXT_RADIUS = 3


@dataclass(frozen=True)
class SuspiciousCharacter:
    """A non-Latin character that imitates a Latin letter."""

    char: str
    script: Script
    position: int
    context: str
    latin_equivalent: str = ""

    @property
    def codepoint(self) -> str:
        return f"U+{ord(self.char):04X}"

    def to_dict(self) -> dict:
        return {
            "char": self.char,
            "codepoint": self.codepoint,
            "script": str(self.script),
            "position": self.position,
            "context": self.context,
            "latin_equivalent": self.latin_equivalent,
        }


@dataclass(frozen=True)
class LexicalResult:
    """Outcome of analyzing one hostname."""

    has_mixed_scripts: bool
    scripts: tuple[Script, ...]
    suspicious_chars: tuple[SuspiciousCharacter, ...]
    explanation: str
    hostname: str = ""
    decoded_hostname: str = ""
    has_punycode: bool = False
    punycode_valid: Optional[bool] = None

    @property
    def punycode_invalid(self) -> bool:
        return self.has_punycode and self.punycode_valid is False

    @property
    def is_suspicious(self) -> bool:
        return self.has_mixed_scripts or bool(self.suspicious_chars) or self.punycode_invalid

    def to_dict(self) -> dict:
        return {
            "has_mixed_scripts": self.has_mixed_scripts,
            "scripts": [str(script) for script in self.scripts],
            "suspicious_chars": [char.to_dict() for char in self.suspicious_chars],
            "explanation": self.explanation,
            "hostname": self.hostname,
            "decoded_hostname": self.decoded_hostname,
            "has_punycode": self.has_punycode,
            "punycode_valid": self.punycode_valid,
        }


class LexicalAnalyzer:
    """Analyzes hostnames for script mixing, homoglyphs and Punycode abuse."""

    def __init__(self, context_radius: int = CONTEXT_RADIUS):
        self.context_radius = context_radius

    def analyze(self, url: str) -> LexicalResult:
        hostname = extract_hostname(url)

        has_punycode = has_ace_label(hostname)
        punycode_valid: Optional[bool] = None
        decode_failed = False
        decoded = hostname

        if has_punycode:
            try:
                decoded = to_unicode(hostname)
                punycode_valid = is_valid_punycode(hostname)
            except PunycodeError as exc:
                logger.debug("Punycode decode failed for %s: %s", hostname, exc)
                decoded = hostname
                punycode_valid = False
                decode_failed = True

        scripts: dict[Script, None] = {}
        suspicious: list[SuspiciousCharacter] = []

        for position, char in enumerate(decoded):
            if char in NEUTRAL_CHARS:
                continue

            script = detect_script(char)
            if script is not Script.UNKNOWN:
                scripts.setdefault(script, None)

            homoglyph = lookup_homoglyph(char)
            if homoglyph is not None and script is not Script.LATIN:
                start = max(0, position - self.context_radius)
                suspicious.append(
                    SuspiciousCharacter(
                        char=char,
                        script=script,
                        position=position,
                        context=decoded[start : position + self.context_radius + 1],
                        latin_equivalent=homoglyph.latin,
                    )
                )

        script_list = tuple(scripts)
        has_mixed_scripts = len(script_list) > 1

        explanation = self._explain(
            hostname=hostname,
            decoded=decoded,
            has_punycode=has_punycode,
            punycode_valid=punycode_valid,
            decode_failed=decode_failed,
            scripts=script_list,
            suspicious=suspicious,
        )

        return LexicalResult(
            has_mixed_scripts=has_mixed_scripts,
            scripts=script_list,
            suspicious_chars=tuple(suspicious),
            explanation=explanation,
            hostname=hostname,
            decoded_hostname=decoded,
            has_punycode=has_punycode,
            punycode_valid=punycode_valid,
        )

    @staticmethod
    def _explain(
        *,
        hostname: str,
        decoded: str,
        has_punycode: bool,
        punycode_valid: Optional[bool],
        decode_failed: bool,
        scripts: tuple[Script, ...],
        suspicious: list[SuspiciousCharacter],
    ) -> str:
        parts: list[str] = []

        if decode_failed:
            parts.append(
                f"Invalid Punycode: '{hostname}' could not be decoded. "
                "Malformed IDN labels can hide the real destination."
            )
        elif has_punycode and not punycode_valid:
            parts.append(
                f"Invalid Punycode: '{hostname}' decodes to '{decoded}' but does not "
                "re-encode to the same labels, a sign of an encoding attack."
            )
        elif has_punycode:
            parts.append(f"Internationalized domain: '{hostname}' decodes to '{decoded}'.")

        if len(scripts) > 1:
            parts.append(
                f"Mixed scripts detected: {', '.join(str(s) for s in scripts)}. "
                "Legitimate domains usually use a single writing system."
            )

        if suspicious:
            listed: dict[str, None] = {}
            for item in suspicious:
                listed.setdefault(
                    f"'{item.char}' ({item.script}, looks like '{item.latin_equivalent}')", None
                )
            parts.append(
                f"Confusable characters detected: {', '.join(listed)}. "
                "These characters can be used to imitate other domains."
            )

        if not (decode_failed or punycode_valid is False or len(scripts) > 1 or suspicious):
            label = str(scripts[0]) if scripts else "standard"
            parts.append(f"Domain uses only {label} characters. No lexical anomalies detected.")

        return " ".join(parts)


_default_analyzer = LexicalAnalyzer()


def analyze_lexical(url: str) -> LexicalResult:
    """Analyze a URL with the default lexical analyzer."""
    return _default_analyzer.analyze(url)
