"""Scenario lifecycle: create, duplicate, update, promote, delete.

The "exactly one principal scenario per project" invariant is enforced here
and nowhere else.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from domain.exceptions import (
    ConflitConcurrentError,
    ScenarioArchiveError,
    ScenarioIntrouvableError,
    ScenarioVerrouilleError,
    SuppressionPrincipalError,
    ValidationError,
)
from domain.models import Scenario
from domain.ports import (
    CachePort,
    DepenseRepository,
    HistoriqueRepository,
    ScenarioRepository,
    SnapshotRepository,
    TransactionPort,
)
from domain.transaction import atomique

logger = logging.getLogger(__name__)

COULEUR_PAR_DEFAUT = "#3B82F6"
ICONE_PAR_DEFAUT = "📋"


def _nom_valide(nom: str | None) -> str:
    if nom is None or not nom.strip():
        raise ValidationError("Le nom du scénario est obligatoire")
    return nom.strip()


def verifier_principal_unique(scenarios: list[Scenario]) -> None:
    """Raise ValidationError unless exactly one scenario is principal."""
    principaux = [s.id for s in scenarios if s.est_principal]
    if scenarios and len(principaux) != 1:
        raise ValidationError(
            f"Un projet doit avoir exactement un scénario principal, trouvé {principaux}"
        )


class ScenarioRegistry:
    """Domain service owning scenario lifecycle operations."""

    def __init__(
        self,
        scenarios: ScenarioRepository,
        depenses: DepenseRepository,
        snapshots: SnapshotRepository,
        historique: HistoriqueRepository,
        tx: TransactionPort,
        cache: CachePort | None = None,
    ) -> None:
        self._scenarios = scenarios
        self._depenses = depenses
        self._snapshots = snapshots
        self._historique = historique
        self._tx = tx
        self._cache = cache

    # ── Queries ────────────────────────────────────────────────────────

    def list_scenarios(self, project_id: int) -> list[Scenario]:
        """Scenarios of a project ordered by ``ordre``."""
        return self._scenarios.list_by_project(project_id)

    def principal(self, project_id: int) -> Scenario | None:
        return next(
            (s for s in self._scenarios.list_by_project(project_id) if s.est_principal),
            None,
        )

    def get(self, scenario_id: int) -> Scenario:
        scenario = self._scenarios.get(scenario_id)
        if scenario is None:
            raise ScenarioIntrouvableError(scenario_id)
        return scenario

    # ── Commands ───────────────────────────────────────────────────────

    def create_scenario(
        self,
        project_id: int,
        nom: str,
        couleur: str | None = None,
        icone: str | None = None,
    ) -> Scenario:
        """Create an empty, unlocked scenario.

        The first scenario of a project becomes principal; every later one
        is created secondary.
        """
        nom = _nom_valide(nom)
        with atomique(self._tx):
            scenario = self._ajouter(project_id, nom, couleur, icone)
        self._invalider(project_id)
        logger.info(
            "Scénario %s '%s' créé (projet %s, principal=%s)",
            scenario.id, scenario.nom, project_id, scenario.est_principal,
        )
        return scenario

    def duplicate_scenario(self, source_id: int, nom: str) -> Scenario:
        """Copy a scenario and all its expenses.

        The copy is a draft: never locked, never principal, and its expenses
        carry no delivery status.
        """
        nom = _nom_valide(nom)
        source = self.get(source_id)
        with atomique(self._tx):
            copie = self._ajouter(source.project_id, nom, source.couleur, source.icone)
            depenses = self._depenses.list_by_scenario(source_id)
            for depense in depenses:
                self._depenses.add(
                    replace(
                        depense,
                        id=None,
                        version=1,
                        scenario_id=copie.id,
                        statut_livraison=None,
                    )
                )
        self._invalider(source.project_id)
        logger.info(
            "Scénario %s dupliqué vers %s avec %d articles",
            source_id, copie.id, len(depenses),
        )
        return copie

    def update_scenario(
        self,
        scenario_id: int,
        nom: str | None = None,
        couleur: str | None = None,
        icone: str | None = None,
        ordre: int | None = None,
        version_attendue: int | None = None,
    ) -> Scenario:
        """Rename / restyle / reorder. Principal and lock flags are not editable here."""
        scenario = self.get(scenario_id)
        if version_attendue is not None and version_attendue != scenario.version:
            raise ConflitConcurrentError(
                "Scénario", scenario_id, version_attendue, scenario.version
            )
        changements = {}
        if nom is not None:
            changements["nom"] = _nom_valide(nom)
        if couleur is not None:
            changements["couleur"] = couleur
        if icone is not None:
            changements["icone"] = icone
        if ordre is not None:
            changements["ordre"] = ordre
        if not changements:
            return scenario
        with atomique(self._tx):
            scenario = self._scenarios.update(replace(scenario, **changements))
        self._invalider(scenario.project_id)
        return scenario

    def promote_scenario(self, scenario_id: int) -> Scenario:
        """Make ``scenario_id`` the principal scenario of its project.

        The previous principal is demoted in the same transaction. Rejected
        while the current principal holds a locked quote.
        """
        cible = self.get(scenario_id)
        scenarios = self._scenarios.list_by_project(cible.project_id)
        actuel = next((s for s in scenarios if s.est_principal), None)
        if actuel is not None and actuel.id == cible.id:
            return cible
        if actuel is not None and actuel.is_locked:
            logger.warning(
                "Promotion de %s refusée : le principal %s est verrouillé",
                scenario_id, actuel.id,
            )
            raise ScenarioVerrouilleError(
                actuel.id,
                "Le devis du scénario principal est verrouillé, promotion impossible",
            )

        with atomique(self._tx):
            for scenario in scenarios:
                if scenario.est_principal and scenario.id != cible.id:
                    self._scenarios.update(replace(scenario, est_principal=False))
            promu = self._scenarios.update(replace(cible, est_principal=True))
            verifier_principal_unique(self._scenarios.list_by_project(cible.project_id))
        self._invalider(cible.project_id)
        logger.info(
            "Scénario %s promu principal (ancien : %s)",
            scenario_id, actuel.id if actuel else None,
        )
        return promu

    def delete_scenario(self, scenario_id: int) -> int:
        """Delete a secondary scenario and its expenses; returns the expense count.

        A scenario that was ever locked keeps its snapshots and audit entries,
        so it cannot be deleted.
        """
        scenario = self.get(scenario_id)
        if scenario.est_principal:
            logger.warning("Suppression du scénario principal %s refusée", scenario_id)
            raise SuppressionPrincipalError(scenario_id)
        snapshots = sum(
            1
            for s in self._snapshots.list_by_project(scenario.project_id)
            if s.scenario_id == scenario_id
        )
        entrees = sum(
            1
            for e in self._historique.list_by_project(scenario.project_id)
            if e.scenario_id == scenario_id
        )
        if snapshots or entrees:
            logger.warning(
                "Suppression du scénario %s refusée : %d snapshots, %d entrées d'historique",
                scenario_id, snapshots, entrees,
            )
            raise ScenarioArchiveError(scenario_id, snapshots, entrees)
        with atomique(self._tx):
            supprimees = self._depenses.delete_by_scenario(scenario_id)
            self._scenarios.delete(scenario_id)
        self._invalider(scenario.project_id)
        logger.info(
            "Scénario %s supprimé avec %d dépenses", scenario_id, supprimees
        )
        return supprimees

    # ── Internal helpers ───────────────────────────────────────────────

    def _ajouter(self, project_id, nom, couleur, icone) -> Scenario:
        existants = self._scenarios.list_by_project(project_id)
        ordre_max = max((s.ordre for s in existants), default=0)
        return self._scenarios.add(
            Scenario(
                project_id=project_id,
                nom=nom,
                couleur=couleur or COULEUR_PAR_DEFAUT,
                icone=icone or ICONE_PAR_DEFAUT,
                est_principal=not existants,
                is_locked=False,
                ordre=ordre_max + 1,
            )
        )

    def _invalider(self, project_id: int) -> None:
        if self._cache is not None:
            self._cache.invalider_projet(project_id)
