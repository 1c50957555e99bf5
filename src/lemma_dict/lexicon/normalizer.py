"""Accent folding, casing and script checks for Greek headwords."""

from __future__ import annotations

import re
from typing import Iterable

ACCENT_MAP = {
    "ά": "α",
    "έ": "ε",
    "ή": "η",
    "ί": "ι",
    "ό": "ο",
    "ύ": "υ",
    "ώ": "ω",
    "ΐ": "ι",
    "ΰ": "υ",
    "ϊ": "ι",
    "ϋ": "υ",
    "Ά": "α",
    "Έ": "ε",
    "Ή": "η",
    "Ί": "ι",
    "Ό": "ο",
    "Ύ": "υ",
    "Ώ": "ω",
    "Ϊ": "ι",
    "Ϋ": "υ",
}
_ACCENT_TABLE = str.maketrans(ACCENT_MAP)

_GREEK = "Ͱ-Ͽἀ-῿"
_LATIN = "A-Za-zÀ-ɏ"
_GREEK_RE = re.compile(f"[{_GREEK}]")
_LATIN_LETTER_RE = re.compile(r"[a-zA-Z]")
_SORT_STRIP_RE = re.compile(f"[^{_GREEK}{_LATIN}0-9]")
# Greek letters, digits, whitespace and common punctuation.
_FOREIGN_RE = re.compile(f"[^{_GREEK}\\d\\s\\-',.:;!?()]")


def fold_accents(text: str) -> str:
    return text.translate(_ACCENT_TABLE)


def sort_key(word: str | None) -> str:
    """Return the accent-stripped, lower-cased key used for ordering.

    Characters outside the Greek and Latin scripts and ASCII digits are
    dropped, so stray punctuation never affects the order. Pathological
    input yields an empty key.
    """
    if not word:
        return ""
    return _SORT_STRIP_RE.sub("", fold_accents(str(word).lower()))


def ordering_key(word: str) -> tuple[bool, str, str]:
    """Sort tuple placing empty keys last and breaking ties on the raw word."""
    key = sort_key(word)
    return (not key, key, word)


def sort_words(words: Iterable[str]) -> list[str]:
    return sorted(words, key=ordering_key)


def classify(word: str | None) -> str:
    """Return the upper-case first letter of the sort key, or ``""``."""
    key = sort_key(word)
    return key[0].upper() if key else ""


def case_variants(word: str) -> list[str]:
    """Capitalised, upper and lower forms of ``word`` that differ from it."""
    if not word:
        return []
    variants: list[str] = []
    for candidate in (word.capitalize(), word.upper(), word.lower()):
        if candidate != word and candidate not in variants:
            variants.append(candidate)
    return variants


def has_target_script(word: str) -> bool:
    return bool(_GREEK_RE.search(word))


def has_latin_letters(word: str) -> bool:
    return bool(_LATIN_LETTER_RE.search(word))


def has_foreign_script(word: str) -> bool:
    """True when ``word`` holds Latin letters or any other non-Greek script."""
    return has_latin_letters(word) or bool(_FOREIGN_RE.search(word))


def is_bound_morpheme(word: str) -> bool:
    return word.startswith("-") or word.endswith("-")
