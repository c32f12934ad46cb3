"""France Travail (ex Pôle emploi) offer mapper.

Field names are French (``intitule``, ``entreprise.nom``,
``lieuTravail.libelle``).  The salary only exists as a label such as
``"Annuel de 38000.0 Euros à 45000.0 Euros sur 12 mois"``.
"""

from __future__ import annotations

from typing import Any

from jobcatalog.sources.base import RawPosting, SourceMapper, clamp_posted_date, detect_remote, dig
from jobcatalog.sources.registry import SourceMapperRegistry
from jobcatalog.sources.salary import parse_salary

_DETAIL_URL = "https://candidat.francetravail.fr/offres/recherche/detail/{id}"


@SourceMapperRegistry.register
class FranceTravailMapper(SourceMapper):
    """Maps one entry of the offers search ``resultats`` array."""

    @property
    def source_name(self) -> str:
        return "france_travail"

    def to_raw(self, payload: dict[str, Any]) -> RawPosting:
        offer_id = self._require_id(payload)
        external_id = f"francetravail-{offer_id}"
        description = dig(payload, "description")
        location = dig(payload, "lieuTravail", "libelle", default="France")
        salary_min, salary_max = parse_salary(dig(payload, "salaire", "libelle"))

        return RawPosting(
            id=external_id,
            title=dig(payload, "intitule", default="Poste non spécifié"),
            company=dig(payload, "entreprise", "nom", default="Non spécifié"),
            description=description,
            location=location,
            source=self.source_name,
            external_id=external_id,
            posted_date=clamp_posted_date(payload.get("dateCreation")),
            is_remote=detect_remote(location, description),
            salary_min=salary_min,
            salary_max=salary_max,
            experience_level=dig(payload, "experienceLibelle") or None,
            source_url=dig(
                payload,
                "origineOffre",
                "urlOrigine",
                default=_DETAIL_URL.format(id=offer_id),
            ),
        )
