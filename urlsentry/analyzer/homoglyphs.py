"""Confusable characters that imitate Latin letters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .scripts import Script, detect_script


@dataclass(frozen=True)
class Homoglyph:
    """A confusable character and the Latin letter it imitates."""

    char: str
    latin: str
    script: Script  # as reported by detect_script


def _table(pairs: dict[str, str]) -> dict[str, Homoglyph]:
    return {char: Homoglyph(char, latin, detect_script(char)) for char, latin in pairs.items()}


HOMOGLYPHS: dict[str, Homoglyph] = {
    # Cyrillic
    **_table(
        {
            "а": "a",  # U+0430
            "в": "v",  # U+0432
            "е": "e",  # U+0435
            "к": "k",  # U+043A
            "м": "m",  # U+043C
            "н": "n",  # U+043D
            "о": "o",  # U+043E
            "р": "p",  # U+0440
            "с": "c",  # U+0441
            "т": "t",  # U+0442
            "у": "y",  # U+0443
            "х": "x",  # U+0445
            "г": "r",  # U+0433
            "ь": "b",  # U+044C
            "Ь": "b",  # U+042C
            "ѕ": "s",  # U+0455
            "і": "i",  # U+0456
            "ј": "j",  # U+0458
            "һ": "h",  # U+04BB
            "ӏ": "l",  # U+04CF
            "ԁ": "d",  # U+0501
            "ԝ": "w",  # U+051D
        },
    ),
    # Greek
    **_table(
        {
            "α": "a",  # U+03B1
            "ε": "e",  # U+03B5
            "ι": "i",  # U+03B9
            "κ": "k",  # U+03BA
            "ν": "v",  # U+03BD
            "ο": "o",  # U+03BF
            "ρ": "p",  # U+03C1
            "υ": "u",  # U+03C5
            "χ": "x",  # U+03C7
            "ϲ": "c",  # U+03F2
        },
    ),
    # Armenian, reported as Unknown
    **_table(
        {
            "ո": "n",  # U+0578
            "ս": "u",  # U+057D
            "ց": "g",  # U+0581
            "հ": "h",  # U+0570
        },
    ),
    # IPA letters are reported as Unknown. Dotless i is Latin, so the lexical
    # analysis never flags it; it only feeds to_latin_skeleton.
    **_table(
        {
            "ɑ": "a",  # U+0251
            "ɡ": "g",  # U+0261
            "ı": "i",  # U+0131
        },
    ),
}


def lookup_homoglyph(char: str) -> Optional[Homoglyph]:
    """Return the confusable entry for char, or None."""
    return HOMOGLYPHS.get(char)


def is_confusable(char: str) -> bool:
    return char in HOMOGLYPHS


def to_latin_skeleton(text: str) -> str:
    """Replace every confusable character with the Latin letter it imitates."""
    return "".join(HOMOGLYPHS[char].latin if char in HOMOGLYPHS else char for char in text)
