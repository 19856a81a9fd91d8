"""Unicode script classification for single characters."""

from __future__ import annotations

from enum import Enum


class Script(str, Enum):
    """Writing systems recognised by the lexical analysis."""

    LATIN = "Latin"
    CYRILLIC = "Cyrillic"
    GREEK = "Greek"
    ARABIC = "Arabic"
    CHINESE = "Chinese"
    JAPANESE = "Japanese"
    KOREAN = "Korean"
    THAI = "Thai"
    HEBREW = "Hebrew"
    UNKNOWN = "Unknown"

    def __str__(self) -> str:
        return self.value


# Checked in order; the first script with a matching range wins.
SCRIPT_RANGES: tuple[tuple[Script, tuple[tuple[int, int], ...]], ...] = (
    (
        Script.LATIN,
        (
            (0x0000, 0x007F),  # Basic Latin
            (0x0080, 0x00FF),  # Latin-1 Supplement
            (0x0100, 0x017F),  # Latin Extended-A
            (0x0180, 0x024F),  # Latin Extended-B
            (0x1E00, 0x1EFF),  # Latin Extended Additional
        ),
    ),
    (
        Script.CYRILLIC,
        (
            (0x0400, 0x04FF),
            (0x0500, 0x052F),
            (0x2DE0, 0x2DFF),
            (0xA640, 0xA69F),
        ),
    ),
    (
        Script.GREEK,
        (
            (0x0370, 0x03FF),
            (0x1F00, 0x1FFF),
        ),
    ),
    (
        Script.ARABIC,
        (
            (0x0600, 0x06FF),
            (0x0750, 0x077F),
            (0x08A0, 0x08FF),
            (0xFB50, 0xFDFF),
            (0xFE70, 0xFEFF),
        ),
    ),
    (
        Script.CHINESE,
        (
            (0x4E00, 0x9FFF),
            (0x3400, 0x4DBF),
        ),
    ),
    (
        Script.JAPANESE,
        (
            (0x3040, 0x309F),  # Hiragana
            (0x30A0, 0x30FF),  # Katakana
        ),
    ),
    (
        Script.KOREAN,
        (
            (0xAC00, 0xD7AF),
            (0x1100, 0x11FF),
            (0x3130, 0x318F),
        ),
    ),
    (Script.THAI, ((0x0E00, 0x0E7F),)),
    (Script.HEBREW, ((0x0590, 0x05FF),)),
)


def detect_script(char: str) -> Script:
    """Return the script of a single character, or Script.UNKNOWN."""
    if len(char) != 1:
        return Script.UNKNOWN
    code = ord(char)
    for script, ranges in SCRIPT_RANGES:
        for start, end in ranges:
            if start <= code <= end:
                return script
    return Script.UNKNOWN
