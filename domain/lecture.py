"""Read models served to the UI: totals, energy balance, comparison, history.

The UI never recomputes these itself. Totals and energy balances go through
the project-scoped ``CachePort``, which every mutating service invalidates.
"""

from __future__ import annotations

from domain.analytics.aggregation import (
    HEURES_ENSOLEILLEMENT,
    TENSION_BATTERIE_V,
    compute_energy_balance,
    compute_totals,
)
from domain.comparaison import build_comparison
from domain.energie import EnergyExtractor
from domain.exceptions import ScenarioIntrouvableError
from domain.models import (
    BilanEnergie,
    DevisSnapshot,
    HistoriqueDepense,
    TableauComparatif,
    Totaux,
)
from domain.ports import (
    CachePort,
    DepenseRepository,
    HistoriqueRepository,
    ScenarioRepository,
    SnapshotRepository,
)


class LectureDevisService:
    """Query facade over the aggregation and comparison engines."""

    def __init__(
        self,
        scenarios: ScenarioRepository,
        depenses: DepenseRepository,
        historique: HistoriqueRepository,
        snapshots: SnapshotRepository,
        cache: CachePort | None = None,
        extractor: EnergyExtractor | None = None,
        tension_v: float = TENSION_BATTERIE_V,
        heures_ensoleillement: float = HEURES_ENSOLEILLEMENT,
    ) -> None:
        self._scenarios = scenarios
        self._depenses = depenses
        self._historique = historique
        self._snapshots = snapshots
        self._cache = cache
        self._extractor = extractor
        self._tension_v = tension_v
        self._heures = heures_ensoleillement

    def totaux(self, scenario_id: int) -> Totaux:
        scenario = self._scenario(scenario_id)
        if self._cache is not None:
            cached = self._cache.get_totaux(scenario.project_id, scenario_id)
            if cached is not None:
                return cached
        totaux = compute_totals(self._depenses.list_by_scenario(scenario_id))
        if self._cache is not None:
            self._cache.set_totaux(scenario.project_id, scenario_id, totaux)
        return totaux

    def bilan_energie(self, scenario_id: int) -> BilanEnergie | None:
        """Energy balance of a scenario; None (never cached) when it has no energy items."""
        scenario = self._scenario(scenario_id)
        if self._cache is not None:
            cached = self._cache.get_bilan(scenario.project_id, scenario_id)
            if cached is not None:
                return cached
        bilan = compute_energy_balance(
            self._depenses.list_by_scenario(scenario_id),
            extractor=self._extractor,
            tension_v=self._tension_v,
            heures_ensoleillement=self._heures,
        )
        if self._cache is not None and bilan is not None:
            self._cache.set_bilan(scenario.project_id, scenario_id, bilan)
        return bilan

    def comparaison(self, project_id: int) -> TableauComparatif:
        scenarios = self._scenarios.list_by_project(project_id)
        depenses = {s.id: self._depenses.list_by_scenario(s.id) for s in scenarios}
        return build_comparison(scenarios, depenses)

    def historique(self, project_id: int) -> list[HistoriqueDepense]:
        return self._historique.list_by_project(project_id)

    def snapshots(self, project_id: int) -> list[DevisSnapshot]:
        return self._snapshots.list_by_project(project_id)

    def _scenario(self, scenario_id: int):
        scenario = self._scenarios.get(scenario_id)
        if scenario is None:
            raise ScenarioIntrouvableError(scenario_id)
        return scenario
