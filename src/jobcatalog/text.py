"""Shared text-processing utilities.

Pure functions with no domain dependencies — safe to import from any
layer (catalog, detectors, storage, CLI).
"""

from __future__ import annotations

import re
import unicodedata

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def strip_accents(text: str) -> str:
    """Decompose *text* (NFD) and drop the combining marks.

    >>> strip_accents("Développeur Sénior")
    'Developpeur Senior'
    """
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize(text: str | None) -> str:
    """Canonical comparison form used for keys and similarity.

    Lowercases, strips diacritics, removes punctuation, collapses
    whitespace and trims.  ``None`` normalizes to ``""``.

    >>> normalize("  Société Générale — Paris!  ")
    'societe generale paris'
    """
    if not text:
        return ""
    cleaned = strip_accents(text.lower())
    cleaned = _NON_WORD.sub("", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned)
    return cleaned.strip()
