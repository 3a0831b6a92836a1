"""
Text folding helpers shared by the catalog and the extractor.
"""

import re
import unicodedata

_SLUG_SYMBOLS = {"+": "plus", "#": "sharp"}
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def strip_diacritics(text: str) -> str:
    """Remove combining marks ("é" -> "e"). Keeps one char per base letter."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def fold_text(text: str) -> str:
    """Lowercase and strip diacritics for case/accent-insensitive matching."""
    return strip_diacritics(text or "").lower()


def normalize_to_slug(display_name: str) -> str:
    """
    Derive the catalog slug of a skill from its display name.

    Lowercases, strips diacritics, spells out ``+`` and ``#`` so that
    "C++" and "C#" stay distinct, turns every other run of non-alphanumeric
    characters into a single hyphen and trims hyphens at both ends.

        >>> normalize_to_slug("Développement Web")
        'developpement-web'
        >>> normalize_to_slug("C#")
        'csharp'
    """
    folded = fold_text(display_name)
    for symbol, word in _SLUG_SYMBOLS.items():
        folded = folded.replace(symbol, word)
    return _NON_ALNUM.sub("-", folded).strip("-")
