"""Expense mutation handlers with post-lock audit trail.

Every create / update / delete / replace of an expense goes through
``ChangeAuditor``. When the owning scenario is locked, a ``HistoriqueDepense``
capturing the pre-mutation expense is appended in the same transaction as the
mutation itself. Unlocked scenarios produce no history.
"""

from __future__ import annotations

import logging
from dataclasses import fields, replace

from domain.clock import Clock, SystemClock
from domain.exceptions import (
    ActionAdministrativeInterditeError,
    ConflitConcurrentError,
    DepenseIntrouvableError,
    ScenarioIntrouvableError,
    ValidationError,
)
from domain.models import (
    ActionHistorique,
    Depense,
    HistoriqueDepense,
    Scenario,
    StatutLivraison,
)
from domain.ports import (
    CachePort,
    CurrentUserPort,
    DepenseRepository,
    HistoriqueRepository,
    ScenarioRepository,
    SnapshotRepository,
    TransactionPort,
)
from domain.transaction import atomique

logger = logging.getLogger(__name__)

# Fields a caller may change through modifier_depense
CHAMPS_MODIFIABLES = frozenset(
    f.name
    for f in fields(Depense)
    if f.name not in {"id", "scenario_id", "project_id", "version"}
)


class ChangeAuditor:
    """Applies expense mutations and records them once the quote is locked."""

    def __init__(
        self,
        scenarios: ScenarioRepository,
        depenses: DepenseRepository,
        historique: HistoriqueRepository,
        snapshots: SnapshotRepository,
        tx: TransactionPort,
        utilisateur: CurrentUserPort | None = None,
        clock: Clock | None = None,
        cache: CachePort | None = None,
        raison_obligatoire: bool = False,
        admin_actions: bool = False,
    ) -> None:
        self._scenarios = scenarios
        self._depenses = depenses
        self._historique = historique
        self._snapshots = snapshots
        self._tx = tx
        self._utilisateur = utilisateur
        self._clock = clock or SystemClock()
        self._cache = cache
        self._raison_obligatoire = raison_obligatoire
        self._admin_actions = admin_actions

    # ── Mutation handlers ──────────────────────────────────────────────

    def ajouter_depense(self, depense: Depense, raison: str | None = None) -> Depense:
        """Add an expense to its scenario."""
        scenario = self._scenario(depense.scenario_id)
        if scenario.is_locked:
            self._valider_raison(raison)
        depense = replace(depense, project_id=scenario.project_id, id=None, version=1)
        with atomique(self._tx):
            ajoutee = self._depenses.add(depense)
            if scenario.is_locked:
                self._tracer(scenario, ActionHistorique.AJOUT, ajoutee, raison)
        self._invalider(scenario.project_id)
        return ajoutee

    def modifier_depense(
        self,
        depense_id: int,
        changements: dict,
        raison: str | None = None,
        version_attendue: int | None = None,
    ) -> Depense:
        """Apply field changes to an expense.

        ``version_attendue`` enables the optimistic-concurrency check: the
        update is rejected if the expense changed since the caller read it.
        Fields already holding the requested value are dropped; when nothing
        is left the expense is returned untouched and no history is written.
        """
        inconnus = set(changements) - CHAMPS_MODIFIABLES
        if inconnus:
            raise ValidationError(f"Champs non modifiables : {sorted(inconnus)}")
        if isinstance(changements.get("statut_livraison"), str):
            try:
                statut = StatutLivraison(changements["statut_livraison"])
            except ValueError as exc:
                raise ValidationError(
                    f"Statut de livraison inconnu : {changements['statut_livraison']!r}"
                ) from exc
            changements = {**changements, "statut_livraison": statut}
        avant = self._depense(depense_id)
        if version_attendue is not None and version_attendue != avant.version:
            raise ConflitConcurrentError(
                "Dépense", depense_id, version_attendue, avant.version
            )
        changements = {
            champ: valeur
            for champ, valeur in changements.items()
            if getattr(avant, champ) != valeur
        }
        if not changements:
            return avant
        scenario = self._scenario(avant.scenario_id)
        if scenario.is_locked:
            self._valider_raison(raison)
        with atomique(self._tx):
            if scenario.is_locked:
                self._tracer(scenario, ActionHistorique.MODIFICATION, avant, raison)
            apres = self._depenses.update(replace(avant, **changements))
        self._invalider(scenario.project_id)
        return apres

    def supprimer_depense(self, depense_id: int, raison: str | None = None) -> None:
        avant = self._depense(depense_id)
        scenario = self._scenario(avant.scenario_id)
        if scenario.is_locked:
            self._valider_raison(raison)
        with atomique(self._tx):
            if scenario.is_locked:
                self._tracer(scenario, ActionHistorique.SUPPRESSION, avant, raison)
            self._depenses.delete(depense_id)
        self._invalider(scenario.project_id)

    def remplacer_depense(
        self, depense_id: int, remplacante: Depense, raison: str | None = None
    ) -> Depense:
        """Swap an expense for another product; the old line is removed."""
        avant = self._depense(depense_id)
        scenario = self._scenario(avant.scenario_id)
        if scenario.is_locked:
            self._valider_raison(raison)
        with atomique(self._tx):
            nouvelle = self._depenses.add(
                replace(
                    remplacante,
                    scenario_id=scenario.id,
                    project_id=scenario.project_id,
                    id=None,
                    version=1,
                )
            )
            if scenario.is_locked:
                self._tracer(
                    scenario,
                    ActionHistorique.REMPLACEMENT,
                    avant,
                    raison,
                    remplace_par_id=nouvelle.id,
                )
            self._depenses.delete(depense_id)
        self._invalider(scenario.project_id)
        return nouvelle

    # ── History ────────────────────────────────────────────────────────

    def historique(self, project_id: int) -> list[HistoriqueDepense]:
        """Audit entries of a project, newest first."""
        return self._historique.list_by_project(project_id)

    def effacer_historique(self, project_id: int) -> dict[str, int]:
        """Purge the project's audit trail and quote snapshots (administrative)."""
        if not self._admin_actions:
            raise ActionAdministrativeInterditeError("effacer_historique")
        with atomique(self._tx):
            entrees = self._historique.delete_by_project(project_id)
            snapshots = self._snapshots.delete_by_project(project_id)
        self._invalider(project_id)
        logger.info(
            "Historique du projet %s effacé : %d entrées, %d snapshots",
            project_id, entrees, snapshots,
        )
        return {"historique": entrees, "snapshots": snapshots}

    # ── Internal helpers ───────────────────────────────────────────────

    def _tracer(
        self,
        scenario: Scenario,
        action: ActionHistorique,
        depense: Depense,
        raison: str | None,
        remplace_par_id: int | None = None,
    ) -> HistoriqueDepense:
        entree = self._historique.record(
            HistoriqueDepense(
                project_id=scenario.project_id,
                scenario_id=scenario.id,
                expense_id=depense.id,
                action=action,
                ancienne_depense_json=depense.to_dict(),
                raison_changement=raison,
                remplace_par_id=remplace_par_id,
                modifie_par_user_id=(
                    self._utilisateur.user_id() if self._utilisateur else None
                ),
                date_modification=self._clock.now(),
            )
        )
        logger.info(
            "Historique : %s de la dépense %s (scénario verrouillé %s)",
            action.value, depense.id, scenario.id,
        )
        return entree

    def _valider_raison(self, raison: str | None) -> None:
        if self._raison_obligatoire and not (raison and raison.strip()):
            raise ValidationError(
                "Une justification est obligatoire pour modifier un devis verrouillé"
            )

    def _scenario(self, scenario_id: int) -> Scenario:
        scenario = self._scenarios.get(scenario_id)
        if scenario is None:
            raise ScenarioIntrouvableError(scenario_id)
        return scenario

    def _depense(self, depense_id: int) -> Depense:
        depense = self._depenses.get(depense_id)
        if depense is None:
            raise DepenseIntrouvableError(depense_id)
        return depense

    def _invalider(self, project_id: int) -> None:
        if self._cache is not None:
            self._cache.invalider_projet(project_id)
