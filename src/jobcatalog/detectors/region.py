"""City-table region resolver for French postings.

Region ids are the short codes of the 13 metropolitan regions
(``IDF``, ``ARA``, ``PAC`` …).  Matching is accent- and
case-insensitive and works on whole words, so "Lyon 3e (69)" and
"PARIS 15e" resolve while "Venice, CA" does not become Nice.
"""

from __future__ import annotations

import re

from jobcatalog.detectors.base import RegionResolver
from jobcatalog.text import normalize

# Checked in insertion order; the first city found in the location wins.
CITY_REGIONS: dict[str, str] = {
    "paris": "IDF",
    "lyon": "ARA",
    "marseille": "PAC",
    "toulouse": "OCC",
    "nantes": "PDL",
    "lille": "HDF",
    "bordeaux": "NAQ",
    "rennes": "BRE",
    "strasbourg": "GES",
    "montpellier": "OCC",
    "nice": "PAC",
    "grenoble": "ARA",
    "rouen": "NOR",
    "caen": "NOR",
    "dijon": "BFC",
    "besancon": "BFC",
    "tours": "CVL",
    "orleans": "CVL",
    "ajaccio": "COR",
    "bastia": "COR",
    "ile de france": "IDF",
}


class CityRegionResolver(RegionResolver):
    """Resolve a location by looking for a known city name in it."""

    def __init__(self, table: dict[str, str] | None = None) -> None:
        self._table = dict(CITY_REGIONS if table is None else table)
        self._patterns = [
            (re.compile(rf"\b{re.escape(normalize(city))}\b"), code)
            for city, code in self._table.items()
        ]

    async def resolve(self, location: str) -> str | None:
        # Hyphens become spaces so "Ile-de-France" matches "ile de france"
        text = normalize(location.replace("-", " "))
        if not text:
            return None
        for pattern, code in self._patterns:
            if pattern.search(text):
                return code
        return None
