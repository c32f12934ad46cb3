"""Pattern-based experience classifier (French and English wording).

Title, free-text level label and description are joined and checked
against each category's patterns in order of specificity:
lead, senior, junior, mid.  The first category with any match wins, so
"Senior Tech Lead" is ``lead`` and "Développeur confirmé" is ``senior``
even though *confirmé* also appears among the mid patterns.
"""

from __future__ import annotations

import re

from jobcatalog.catalog.posting import ExperienceCategory
from jobcatalog.detectors.base import ExperienceClassifier

_APOS = "['’]"


def _compile(*patterns: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


# Checked top to bottom; order matters.
EXPERIENCE_PATTERNS: tuple[tuple[ExperienceCategory, tuple[re.Pattern[str], ...]], ...] = (
    (
        ExperienceCategory.LEAD,
        _compile(
            r"\blead\b",
            r"\bprincipal\b",
            r"\bstaff\b",
            r"\bhead\s+of\b",
            r"\bdirecteur\s+technique\b",
            r"\bcto\b",
            r"\btech\s+lead\b",
            r"\bteam\s+lead\b",
        ),
    ),
    (
        ExperienceCategory.SENIOR,
        _compile(
            r"\bsenior\b",
            r"\bconfirm[eé]\b",
            r"\bexpert\b",
            r"\b(?:plus\s+de\s+)?[5-9]\+?\s+ans?\b",
            r"\b(?:plus\s+de\s+)?1[0-9]\+?\s+ans?\b",
            rf"\b[5-9]\s+ans?\s+d{_APOS}exp[eé]rience\b",
            rf"\b1[0-9]\s+ans?\s+d{_APOS}exp[eé]rience\b",
            r"\b[5-9]\+?\s+years?\b",
            r"\b1[0-9]\+?\s+years?\b",
            r"\barchitecte?\b",
            r"\bexp[eé]riment[eé]\b",
        ),
    ),
    (
        ExperienceCategory.JUNIOR,
        _compile(
            r"\bjunior\b",
            r"\bd[eé]butant\b",
            r"\bentr[eé]e\s+de\s+carri[eè]re\b",
            r"\b0[-\s]?[aà][-\s]?2\s+ans?\b",
            r"\bpremi[eè]re\s+exp[eé]rience\b",
            r"\bjeune\s+dipl[oô]m[eé]\b",
            r"\bstage\b",
            r"\balternance\b",
            rf"\b[0-2]\s+ans?\s+d{_APOS}exp[eé]rience\b",
            r"\bentry[-\s]level\b",
            r"\bgraduate\b",
            r"\bintern(?:ship)?\b",
        ),
    ),
    (
        ExperienceCategory.MID,
        _compile(
            rf"\b[3-4]\s+ans?\s+d{_APOS}exp[eé]rience\b",
            r"\b[3-4]\s+ans?\b",
            r"\b[2-4][-\s]?[aà][-\s]?5\s+ans?\b",
            r"\b[3-4]\+?\s+years?\b",
            r"\binterm[eé]diaire\b",
            r"\bmid[-\s]?level\b",
        ),
    ),
)


def detect_experience(title: str, level: str | None, description: str) -> ExperienceCategory:
    """Synchronous core of :class:`PatternExperienceClassifier`."""
    text = f"{title} {level or ''} {description}"
    for category, patterns in EXPERIENCE_PATTERNS:
        if any(pattern.search(text) for pattern in patterns):
            return category
    return ExperienceCategory.UNKNOWN


def matches_level(text: str, category: ExperienceCategory) -> bool:
    """True if *text* contains any pattern of *category* (``UNKNOWN`` never matches)."""
    for candidate, patterns in EXPERIENCE_PATTERNS:
        if candidate == category:
            return any(pattern.search(text) for pattern in patterns)
    return False


class PatternExperienceClassifier(ExperienceClassifier):
    """Default classifier backed by :data:`EXPERIENCE_PATTERNS`."""

    async def classify(
        self,
        title: str,
        level: str | None,
        description: str,
    ) -> ExperienceCategory:
        return detect_experience(title, level, description)
