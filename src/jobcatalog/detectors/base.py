"""Abstract contracts for the pipeline's text-derived attributes.

Each detector owns exactly one attribute of a posting.  The ingestion
pipeline depends only on these interfaces, so the shipped pattern-based
defaults can be swapped for model-backed ones without touching it.

All methods are coroutines: the pipeline wraps every call in a timeout
and a retry policy, and a remote implementation may block on I/O.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from jobcatalog.catalog.posting import ExperienceCategory


class TechnologyTagger(ABC):
    """Extracts canonical technology names from free text."""

    @property
    def name(self) -> str:
        """Identifier used in log lines and error messages."""
        return type(self).__name__

    @abstractmethod
    async def tag(self, text: str) -> list[str]:
        """Return the canonical technology names mentioned in *text*."""
        ...


class ExperienceClassifier(ABC):
    """Assigns a seniority bucket from the posting's wording."""

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    async def classify(
        self,
        title: str,
        level: str | None,
        description: str,
    ) -> ExperienceCategory:
        """Return the most specific :class:`ExperienceCategory` that matches.

        Returns ``ExperienceCategory.UNKNOWN`` rather than raising when
        nothing matches.
        """
        ...


class RegionResolver(ABC):
    """Maps free-text location to a region identifier."""

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    async def resolve(self, location: str) -> str | None:
        """Return a region id for *location*, or ``None`` when unknown."""
        ...
