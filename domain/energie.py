"""Energy attribute extraction from expense lines.

The quote engine only knows free-text product names, so wattage and
battery capacity are parsed heuristically. ``EnergyExtractor`` isolates that
heuristic; a structured-attribute extractor can replace it without touching
``compute_energy_balance`` callers.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod

from domain.models import Depense


class EnergyExtractor(ABC):
    """Reads per-unit production and storage figures from an expense."""

    @abstractmethod
    def puissance_w(self, depense: Depense) -> int | None:
        """Per-unit solar production in watts, or None if not a producer."""

    @abstractmethod
    def capacite_ah(self, depense: Depense) -> int | None:
        """Per-unit battery capacity in amp-hours, or None if not a battery."""


_WATTS = re.compile(r"(\d+)\s*w", re.IGNORECASE)
_AMP_HEURES = re.compile(r"(\d+)\s*ah", re.IGNORECASE)


class HeuristicNameExtractor(EnergyExtractor):
    """Substring match on categorie / nom_accessoire, regex on the name.

    "Panneau solaire 150W" -> 150 W, "Batterie lithium 100Ah" -> 100 Ah.
    """

    TERMES_PRODUCTION = ("panneau", "électrique")
    TERMES_STOCKAGE = ("batterie",)

    @staticmethod
    def _correspond(depense: Depense, termes) -> bool:
        texte = f"{depense.categorie or ''} {depense.nom_accessoire or ''}".casefold()
        return any(terme in texte for terme in termes)

    def puissance_w(self, depense: Depense) -> int | None:
        if not self._correspond(depense, self.TERMES_PRODUCTION):
            return None
        match = _WATTS.search(depense.nom_accessoire or "")
        return int(match.group(1)) if match else None

    def capacite_ah(self, depense: Depense) -> int | None:
        if not self._correspond(depense, self.TERMES_STOCKAGE):
            return None
        match = _AMP_HEURES.search(depense.nom_accessoire or "")
        return int(match.group(1)) if match else None
