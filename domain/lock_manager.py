"""Quote-lock state machine.

    UNLOCKED --verrouiller()--> LOCKED --deverrouiller() [admin]--> UNLOCKED

Locking freezes the principal scenario's expense list into an immutable
``DevisSnapshot``, validates the quote on the project, records the deposit
payment and moves every expense to the shopping list ("commande"). The seven
steps run in a single transaction: a failure at any step rolls all of them
back and surfaces as ``EtapeVerrouillageError`` naming the step.
"""

from __future__ import annotations

import logging
import math
from contextlib import contextmanager
from dataclasses import replace

from domain.analytics.aggregation import (
    HEURES_ENSOLEILLEMENT,
    TENSION_BATTERIE_V,
    categories_distinctes,
    compute_energy_balance,
    compute_totals,
    depenses_actives,
)
from domain.clock import Clock, SystemClock
from domain.energie import EnergyExtractor
from domain.exceptions import (
    ActionAdministrativeInterditeError,
    DejaVerrouilleError,
    EtapeVerrouillageError,
    ProjetIntrouvableError,
    ScenarioIntrouvableError,
    ScenarioPrincipalManquantError,
    ValidationError,
)
from domain.models import (
    BilanEnergie,
    DemandeVerrouillage,
    Depense,
    DevisSnapshot,
    EtatFinancier,
    Paiement,
    Projet,
    ResultatVerrouillage,
    Scenario,
    StatutFinancier,
    StatutLivraison,
    Totaux,
)
from domain.ports import (
    CachePort,
    CurrentUserPort,
    DepenseRepository,
    PaiementPort,
    ProjetRepository,
    ScenarioRepository,
    SnapshotRepository,
    TransactionPort,
)
from domain.transaction import atomique

logger = logging.getLogger(__name__)

NOM_SNAPSHOT = "Devis validé"
TYPE_ACOMPTE = "acompte"
NOTE_ACOMPTE = "Acompte à la signature du devis"

# Lock steps, in execution order
ETAPE_CALCUL = "calcul_totaux"
ETAPE_CONTENU = "contenu_snapshot"
ETAPE_SNAPSHOT = "creation_snapshot"
ETAPE_PROJET = "statut_projet"
ETAPE_VERROU = "verrou_scenario"
ETAPE_PAIEMENT = "paiement_acompte"
ETAPE_COMMANDE = "statut_commande"


def contenu_snapshot(
    projet: Projet,
    depenses: list[Depense],
    totaux: Totaux,
    bilan: BilanEnergie | None,
    montant_acompte: float,
    horodatage,
    version: int = 1,
) -> dict:
    """Serialized content of a quote snapshot."""
    categories = categories_distinctes(depenses)
    contenu = {
        "version": version,
        "date": horodatage.isoformat(),
        "nom": NOM_SNAPSHOT,
        "projet": projet.metadata(),
        "depenses": [d.to_dict() for d in depenses],
        "totaux": {
            "total_achat_ht": totaux.total_achat,
            "total_vente_ttc": totaux.total_vente,
            "marge_totale": totaux.marge_euros,
            "marge_pourcentage": totaux.marge_pourcent,
        },
        "metadata": {
            "nombre_articles": totaux.nombre_articles,
            "nombre_categories": len(categories),
            "categories_utilisees": categories,
            "date_validation": horodatage.isoformat(),
            "montant_acompte": montant_acompte,
        },
    }
    if bilan is not None:
        contenu["bilan_energie"] = {
            "production_w": bilan.production_w,
            "stockage_ah": bilan.stockage_ah,
            "stockage_wh": bilan.stockage_wh,
            "autonomie_jours": bilan.autonomie_jours,
        }
    return contenu


class LockManager:
    """Orchestrates the lock and the administrative unlock of a quote."""

    def __init__(
        self,
        projets: ProjetRepository,
        scenarios: ScenarioRepository,
        depenses: DepenseRepository,
        snapshots: SnapshotRepository,
        paiements: PaiementPort,
        tx: TransactionPort,
        utilisateur: CurrentUserPort | None = None,
        clock: Clock | None = None,
        extractor: EnergyExtractor | None = None,
        cache: CachePort | None = None,
        admin_actions: bool = False,
        tension_v: float = TENSION_BATTERIE_V,
        heures_ensoleillement: float = HEURES_ENSOLEILLEMENT,
    ) -> None:
        self._projets = projets
        self._scenarios = scenarios
        self._depenses = depenses
        self._snapshots = snapshots
        self._paiements = paiements
        self._tx = tx
        self._utilisateur = utilisateur
        self._clock = clock or SystemClock()
        self._extractor = extractor
        self._cache = cache
        self._admin_actions = admin_actions
        self._tension_v = tension_v
        self._heures = heures_ensoleillement

    # ── Lock ───────────────────────────────────────────────────────────

    def verrouiller_projet(
        self, project_id: int, montant_acompte: float | None, notes: str | None = None
    ) -> ResultatVerrouillage:
        """Lock the principal scenario of ``project_id``."""
        _valider_acompte(montant_acompte)
        principal = next(
            (s for s in self._scenarios.list_by_project(project_id) if s.est_principal),
            None,
        )
        if principal is None:
            logger.warning("Verrouillage refusé : projet %s sans principal", project_id)
            raise ScenarioPrincipalManquantError(project_id)
        return self.verrouiller(
            DemandeVerrouillage(
                scenario_id=principal.id, montant_acompte=montant_acompte, notes=notes
            )
        )

    def verrouiller(self, demande: DemandeVerrouillage) -> ResultatVerrouillage:
        """Freeze the principal scenario's quote.

        Raises:
            ValidationError: non-positive or missing deposit.
            ScenarioIntrouvableError / ProjetIntrouvableError: unknown ids.
            ScenarioPrincipalManquantError: the project has no principal, or
                the requested scenario is not it.
            DejaVerrouilleError: the scenario is already locked.
            EtapeVerrouillageError: a step failed; nothing was persisted.
        """
        scenario, projet = self._valider(demande)
        montant = float(demande.montant_acompte)
        maintenant = self._clock.now()

        with self._transaction():
            with self._etape(ETAPE_CALCUL):
                actives = depenses_actives(self._depenses.list_by_scenario(scenario.id))
                totaux = compute_totals(actives)
                bilan = compute_energy_balance(
                    actives,
                    extractor=self._extractor,
                    tension_v=self._tension_v,
                    heures_ensoleillement=self._heures,
                )

            with self._etape(ETAPE_CONTENU):
                version = self._snapshots.max_version(projet.id) + 1
                contenu = contenu_snapshot(
                    projet, actives, totaux, bilan, montant, maintenant, version
                )

            with self._etape(ETAPE_SNAPSHOT):
                snapshot = self._snapshots.add(
                    DevisSnapshot(
                        project_id=projet.id,
                        scenario_id=scenario.id,
                        version_numero=version,
                        nom_snapshot=NOM_SNAPSHOT,
                        contenu_complet=contenu,
                        notes=demande.notes,
                        created_at=maintenant,
                    )
                )

            with self._etape(ETAPE_PROJET):
                etat = EtatFinancier(
                    statut_financier=StatutFinancier.DEVIS_ACCEPTE,
                    date_validation_devis=maintenant,
                    date_encaissement_acompte=maintenant,
                    montant_acompte=montant,
                )
                self._projets.update_etat(projet.id, etat)

            with self._etape(ETAPE_VERROU):
                self._scenarios.update(replace(scenario, is_locked=True))

            with self._etape(ETAPE_PAIEMENT):
                user_id = self._utilisateur.user_id() if self._utilisateur else None
                if user_id is None:
                    logger.warning(
                        "Acompte du projet %s enregistré sans utilisateur", projet.id
                    )
                paiement = self._paiements.enregistrer(
                    Paiement(
                        project_id=projet.id,
                        montant=montant,
                        type_paiement=TYPE_ACOMPTE,
                        user_id=user_id,
                        date_paiement=maintenant.date(),
                        notes=NOTE_ACOMPTE,
                    )
                )

            with self._etape(ETAPE_COMMANDE):
                commandees = self._depenses.set_statut_livraison(
                    scenario.id, StatutLivraison.COMMANDE
                )

        self._invalider(projet.id)
        logger.info(
            "Devis du projet %s verrouillé : scénario %s, snapshot v%d, "
            "acompte %.2f €, %d articles commandés",
            projet.id, scenario.id, version, montant, commandees,
        )
        return ResultatVerrouillage(
            snapshot=snapshot,
            paiement=paiement,
            etat=etat,
            nombre_depenses_commandees=commandees,
        )

    # ── Administrative unlock ──────────────────────────────────────────

    def deverrouiller(self, scenario_id: int) -> Scenario:
        """Return a locked scenario to the draft state.

        Resets the project's financial state, removes the deposit payments and
        the "commande" status of the expenses. Snapshots and history are kept.
        """
        if not self._admin_actions:
            raise ActionAdministrativeInterditeError("deverrouiller")
        scenario = self._scenarios.get(scenario_id)
        if scenario is None:
            raise ScenarioIntrouvableError(scenario_id)
        if not scenario.is_locked:
            raise ValidationError(f"Le scénario {scenario_id} n'est pas verrouillé")

        with self._transaction():
            self._projets.update_etat(scenario.project_id, EtatFinancier())
            deverrouille = self._scenarios.update(replace(scenario, is_locked=False))
            paiements = self._paiements.supprimer_par_projet(
                scenario.project_id, TYPE_ACOMPTE
            )
            self._depenses.set_statut_livraison(scenario_id, None)

        self._invalider(scenario.project_id)
        logger.info(
            "Scénario %s déverrouillé (projet %s, %d paiements supprimés)",
            scenario_id, scenario.project_id, paiements,
        )
        return deverrouille

    # ── Internal helpers ───────────────────────────────────────────────

    def _valider(self, demande: DemandeVerrouillage) -> tuple[Scenario, Projet]:
        _valider_acompte(demande.montant_acompte)
        scenario = self._scenarios.get(demande.scenario_id)
        if scenario is None:
            raise ScenarioIntrouvableError(demande.scenario_id)
        projet = self._projets.get(scenario.project_id)
        if projet is None:
            raise ProjetIntrouvableError(scenario.project_id)
        principal = next(
            (
                s
                for s in self._scenarios.list_by_project(projet.id)
                if s.est_principal
            ),
            None,
        )
        if principal is None:
            logger.warning("Verrouillage refusé : projet %s sans principal", projet.id)
            raise ScenarioPrincipalManquantError(projet.id)
        if principal.id != scenario.id:
            logger.warning(
                "Verrouillage refusé : scénario %s non principal", scenario.id
            )
            raise ScenarioPrincipalManquantError(projet.id, scenario.id)
        if scenario.is_locked:
            logger.warning("Verrouillage refusé : scénario %s déjà verrouillé", scenario.id)
            raise DejaVerrouilleError(scenario.id)
        return scenario, projet

    @contextmanager
    def _transaction(self):
        try:
            with atomique(self._tx):
                yield
        except Exception:
            logger.error("Opération de verrou annulée (rollback)", exc_info=True)
            raise

    @contextmanager
    def _etape(self, etape: str):
        logger.debug("Étape de verrouillage : %s", etape)
        try:
            yield
        except EtapeVerrouillageError:
            raise
        except Exception as exc:
            raise EtapeVerrouillageError(etape, exc) from exc

    def _invalider(self, project_id: int) -> None:
        if self._cache is not None:
            self._cache.invalider_projet(project_id)


def _valider_acompte(montant_acompte) -> None:
    if montant_acompte is None:
        raise ValidationError("Le montant de l'acompte est obligatoire")
    if isinstance(montant_acompte, bool):
        raise ValidationError(f"Montant d'acompte invalide : {montant_acompte!r}")
    try:
        montant = float(montant_acompte)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Montant d'acompte invalide : {montant_acompte!r}") from exc
    if not math.isfinite(montant):
        raise ValidationError(f"Montant d'acompte invalide : {montant_acompte!r}")
    if not montant > 0:
        raise ValidationError("Le montant de l'acompte doit être strictement positif")
