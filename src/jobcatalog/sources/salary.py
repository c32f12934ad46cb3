"""Salary text parsing for source payloads.

Extracts a salary range from free text such as ``"Annuel de 30000 Euros
à 40000 Euros"``, ``"$40k - $50k"`` or ``"50 000 €"`` and returns it in
thousands of the currency, the unit :class:`~jobcatalog.catalog.posting.PostingRecord`
stores.  Monthly and hourly amounts are annualized first.

No currency conversion: a dollar range stays in dollars.
"""

from __future__ import annotations

import re

# An amount: 40000 / 40,000 / 40 000 (incl. non-breaking spaces) / 40000.0
_NUMBER = r"(\d{1,3}(?:[ \u00a0\u202f,]\d{3})+|\d+)(?:[.,]\d{1,2})?"

_CURRENCY = r"(?:[$€£]\s*)?"

_CURRENCY_WORD = r"(?:\s*(?:euros?|eur|€|\$|usd))?"

_AMOUNT = _CURRENCY + _NUMBER + r"\s*([kK])?" + _CURRENCY_WORD

# Range connectors: "-", en/em dash, "to", "à" / "a"
_RANGE_SEP = r"\s*(?:-|\N{EN DASH}|\N{EM DASH}|to|à|a)\s*"

_RANGE_PATTERN = re.compile(_AMOUNT + _RANGE_SEP + _AMOUNT, re.IGNORECASE)

_SINGLE_PATTERN = re.compile(_AMOUNT, re.IGNORECASE)

_MONTHLY_RE = re.compile(r"\b(?:mensuel|par\s+mois|per\s+month|monthly)\b|/\s*mois", re.IGNORECASE)

_HOURLY_RE = re.compile(r"\b(?:horaire|per\s+hour|hourly)\b|/\s*(?:hr|hour|h)\b", re.IGNORECASE)

_MONTHS_PER_YEAR = 12
_HOURS_PER_YEAR = 2080


def _parse_amount(raw_digits: str, k_suffix: str | None) -> float:
    """Convert a captured amount to full currency units."""
    value = float(re.sub(r"[ \u00a0\u202f,]", "", raw_digits))
    if k_suffix:
        value *= 1_000
    return value


def _annualize(value: float, text: str) -> float:
    if _HOURLY_RE.search(text):
        return value * _HOURS_PER_YEAR
    if _MONTHLY_RE.search(text):
        return value * _MONTHS_PER_YEAR
    return value


def to_thousands(value: float | None) -> float | None:
    """Full currency units to whole thousands; ``None`` and sub-500 values to ``None``."""
    if value is None:
        return None
    thousands = round(value / 1_000)
    if thousands <= 0:
        return None
    return float(thousands)


def parse_salary(text: str | None) -> tuple[float | None, float | None]:
    """Return ``(min, max)`` in thousands, or ``(None, None)`` when nothing usable is found.

    A single amount yields ``(value, value)``.  An inverted range is
    rejected rather than swapped.
    """
    if not text:
        return None, None

    match = _RANGE_PATTERN.search(text)
    if match:
        low = _annualize(_parse_amount(match.group(1), match.group(2)), text)
        high = _annualize(_parse_amount(match.group(3), match.group(4)), text)
        low_k, high_k = to_thousands(low), to_thousands(high)
        if low_k is None or high_k is None or low_k > high_k:
            return None, None
        return low_k, high_k

    match = _SINGLE_PATTERN.search(text)
    if match:
        value = to_thousands(_annualize(_parse_amount(match.group(1), match.group(2)), text))
        return value, value

    return None, None
