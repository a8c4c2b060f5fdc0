"""SQLAlchemy implementations of domain repository ports.

Each adapter translates between ORM models (sqlalchemy_models) and
pure domain models (domain.models), keeping the domain layer free
of any infrastructure dependency.

Adapters only ``flush()``: the domain services own commit/rollback through
``SqlAlchemyTransaction``, so every repository sharing a session takes part
in the same transaction.
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from devis.adapters.outbound.sqlalchemy_models import (
    Depense as OrmDepense,
    DevisSnapshot as OrmDevisSnapshot,
    HistoriqueDepense as OrmHistoriqueDepense,
    Paiement as OrmPaiement,
    Projet as OrmProjet,
    Scenario as OrmScenario,
)
from domain.exceptions import (
    ConflitConcurrentError,
    DepenseIntrouvableError,
    ProjetIntrouvableError,
    ScenarioIntrouvableError,
)
from domain.models import (
    ActionHistorique,
    Depense as DomainDepense,
    DevisSnapshot as DomainDevisSnapshot,
    EtatFinancier,
    HistoriqueDepense as DomainHistoriqueDepense,
    Paiement as DomainPaiement,
    Projet as DomainProjet,
    Scenario as DomainScenario,
    StatutFinancier,
    StatutLivraison,
)
from domain.ports import (
    CurrentUserPort,
    DepenseRepository,
    HistoriqueRepository,
    PaiementPort,
    ProjetRepository,
    ScenarioRepository,
    SnapshotRepository,
    TransactionPort,
)


class SqlAlchemyTransaction(TransactionPort):
    """TransactionPort over a SQLAlchemy session."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def commit(self) -> None:
        self._session.commit()

    def rollback(self) -> None:
        self._session.rollback()


def _flush(session: Session, entite: str, identifiant, attendue: int) -> None:
    """Flush, turning a versioned-row mismatch into ConflitConcurrentError."""
    try:
        session.flush()
    except StaleDataError as exc:
        raise ConflitConcurrentError(entite, identifiant, attendue, -1) from exc


class SqlAlchemyProjetRepository(ProjetRepository):
    """SQLAlchemy adapter for the ProjetRepository port."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, project_id: int) -> DomainProjet | None:
        orm = self._session.get(OrmProjet, project_id)
        return self._to_domain(orm) if orm else None

    def save(self, projet: DomainProjet) -> DomainProjet:
        orm = self._session.get(OrmProjet, projet.id) if projet.id else None
        if orm is None:
            orm = OrmProjet()
            self._session.add(orm)
        orm.nom = projet.nom
        orm.nom_proprietaire = projet.nom_proprietaire
        orm.marque_vehicule = projet.marque_vehicule
        orm.modele_vehicule = projet.modele_vehicule
        self._appliquer_etat(orm, projet.etat)
        self._session.flush()
        projet.id = orm.id
        return projet

    def update_etat(self, project_id: int, etat: EtatFinancier) -> DomainProjet:
        orm = self._session.get(OrmProjet, project_id)
        if orm is None:
            raise ProjetIntrouvableError(project_id)
        self._appliquer_etat(orm, etat)
        self._session.flush()
        return self._to_domain(orm)

    # ── Internal helpers ───────────────────────────────────────────────

    @staticmethod
    def _appliquer_etat(orm: OrmProjet, etat: EtatFinancier) -> None:
        orm.statut_financier = etat.statut_financier.value
        orm.date_validation_devis = etat.date_validation_devis
        orm.date_encaissement_acompte = etat.date_encaissement_acompte
        orm.montant_acompte = etat.montant_acompte

    @staticmethod
    def _to_domain(orm: OrmProjet) -> DomainProjet:
        """Convert an ORM Projet row to a domain Projet."""
        valid_statuts = {s.value for s in StatutFinancier}
        statut = (
            StatutFinancier(orm.statut_financier)
            if orm.statut_financier in valid_statuts
            else StatutFinancier.BROUILLON
        )
        return DomainProjet(
            nom=orm.nom,
            nom_proprietaire=orm.nom_proprietaire,
            marque_vehicule=orm.marque_vehicule,
            modele_vehicule=orm.modele_vehicule,
            etat=EtatFinancier(
                statut_financier=statut,
                date_validation_devis=orm.date_validation_devis,
                date_encaissement_acompte=orm.date_encaissement_acompte,
                montant_acompte=orm.montant_acompte,
            ),
            id=orm.id,
        )


class SqlAlchemyScenarioRepository(ScenarioRepository):
    """SQLAlchemy adapter for the ScenarioRepository port."""

    def __init__(self, session: Session) -> None:
        self._session = session

    # ── Queries ────────────────────────────────────────────────────────

    def get(self, scenario_id: int) -> DomainScenario | None:
        orm = self._session.get(OrmScenario, scenario_id)
        return self._to_domain(orm) if orm else None

    def list_by_project(self, project_id: int) -> list[DomainScenario]:
        """Return the project's scenarios ordered by ordre, then id."""
        stmt = (
            select(OrmScenario)
            .where(OrmScenario.project_id == project_id)
            .order_by(OrmScenario.ordre, OrmScenario.id)
        )
        return [self._to_domain(orm) for orm in self._session.scalars(stmt)]

    # ── Commands ───────────────────────────────────────────────────────

    def add(self, scenario: DomainScenario) -> DomainScenario:
        orm = OrmScenario(
            project_id=scenario.project_id,
            nom=scenario.nom,
            couleur=scenario.couleur,
            icone=scenario.icone,
            est_principal=scenario.est_principal,
            is_locked=scenario.is_locked,
            ordre=scenario.ordre,
        )
        self._session.add(orm)
        self._session.flush()
        return self._to_domain(orm)

    def update(self, scenario: DomainScenario) -> DomainScenario:
        orm = self._session.get(OrmScenario, scenario.id)
        if orm is None:
            raise ScenarioIntrouvableError(scenario.id)
        if orm.version != scenario.version:
            raise ConflitConcurrentError(
                "Scénario", scenario.id, scenario.version, orm.version
            )
        orm.nom = scenario.nom
        orm.couleur = scenario.couleur
        orm.icone = scenario.icone
        orm.est_principal = scenario.est_principal
        orm.is_locked = scenario.is_locked
        orm.ordre = scenario.ordre
        _flush(self._session, "Scénario", scenario.id, scenario.version)
        return self._to_domain(orm)

    def delete(self, scenario_id: int) -> None:
        orm = self._session.get(OrmScenario, scenario_id)
        if orm is None:
            raise ScenarioIntrouvableError(scenario_id)
        self._session.delete(orm)
        self._session.flush()

    # ── Internal helpers ───────────────────────────────────────────────

    @staticmethod
    def _to_domain(orm: OrmScenario) -> DomainScenario:
        """Convert an ORM Scenario row to a domain Scenario."""
        return DomainScenario(
            project_id=orm.project_id,
            nom=orm.nom,
            icone=orm.icone or "📋",
            couleur=orm.couleur or "#3B82F6",
            est_principal=bool(orm.est_principal),
            is_locked=bool(orm.is_locked),
            ordre=orm.ordre or 0,
            version=orm.version,
            id=orm.id,
        )


class SqlAlchemyDepenseRepository(DepenseRepository):
    """SQLAlchemy adapter for the DepenseRepository port."""

    def __init__(self, session: Session) -> None:
        self._session = session

    # ── Queries ────────────────────────────────────────────────────────

    def get(self, depense_id: int) -> DomainDepense | None:
        orm = self._session.get(OrmDepense, depense_id)
        return self._to_domain(orm) if orm else None

    def list_by_scenario(self, scenario_id: int) -> list[DomainDepense]:
        """Return every expense of a scenario (archived included), by id."""
        return [self._to_domain(orm) for orm in self._orm_by_scenario(scenario_id)]

    # ── Commands ───────────────────────────────────────────────────────

    def add(self, depense: DomainDepense) -> DomainDepense:
        orm = OrmDepense(scenario_id=depense.scenario_id, project_id=depense.project_id)
        self._appliquer(orm, depense)
        self._session.add(orm)
        self._session.flush()
        return self._to_domain(orm)

    def update(self, depense: DomainDepense) -> DomainDepense:
        orm = self._session.get(OrmDepense, depense.id)
        if orm is None:
            raise DepenseIntrouvableError(depense.id)
        if orm.version != depense.version:
            raise ConflitConcurrentError(
                "Dépense", depense.id, depense.version, orm.version
            )
        self._appliquer(orm, depense)
        _flush(self._session, "Dépense", depense.id, depense.version)
        return self._to_domain(orm)

    def delete(self, depense_id: int) -> None:
        orm = self._session.get(OrmDepense, depense_id)
        if orm is None:
            raise DepenseIntrouvableError(depense_id)
        self._session.delete(orm)
        self._session.flush()

    def delete_by_scenario(self, scenario_id: int) -> int:
        rows = self._orm_by_scenario(scenario_id)
        for orm in rows:
            self._session.delete(orm)
        self._session.flush()
        return len(rows)

    def set_statut_livraison(
        self, scenario_id: int, statut: StatutLivraison | None
    ) -> int:
        rows = self._orm_by_scenario(scenario_id)
        for orm in rows:
            orm.statut_livraison = statut.value if statut else None
        self._session.flush()
        return len(rows)

    # ── Internal helpers ───────────────────────────────────────────────

    def _orm_by_scenario(self, scenario_id: int) -> list[OrmDepense]:
        stmt = (
            select(OrmDepense)
            .where(OrmDepense.scenario_id == scenario_id)
            .order_by(OrmDepense.id)
        )
        return list(self._session.scalars(stmt))

    @staticmethod
    def _appliquer(orm: OrmDepense, depense: DomainDepense) -> None:
        orm.nom_accessoire = depense.nom_accessoire
        orm.categorie = depense.categorie
        orm.prix = depense.prix
        orm.quantite = depense.quantite
        orm.prix_vente_ttc = depense.prix_vente_ttc
        orm.fournisseur = depense.fournisseur
        orm.marque = depense.marque
        orm.notes = depense.notes
        orm.est_archive = depense.est_archive
        orm.statut_livraison = (
            depense.statut_livraison.value if depense.statut_livraison else None
        )

    @staticmethod
    def _to_domain(orm: OrmDepense) -> DomainDepense:
        """Convert an ORM Depense row to a domain Depense."""
        valid_statuts = {s.value for s in StatutLivraison}
        statut = (
            StatutLivraison(orm.statut_livraison)
            if orm.statut_livraison in valid_statuts
            else None
        )
        return DomainDepense(
            scenario_id=orm.scenario_id,
            project_id=orm.project_id,
            nom_accessoire=orm.nom_accessoire,
            categorie=orm.categorie,
            prix=orm.prix or 0.0,
            quantite=orm.quantite if orm.quantite is not None else 1,
            prix_vente_ttc=orm.prix_vente_ttc,
            fournisseur=orm.fournisseur,
            marque=orm.marque,
            notes=orm.notes,
            est_archive=bool(orm.est_archive),
            statut_livraison=statut,
            version=orm.version,
            id=orm.id,
        )


class SqlAlchemySnapshotRepository(SnapshotRepository):
    """SQLAlchemy adapter for the SnapshotRepository port (insert-only)."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def add(self, snapshot: DomainDevisSnapshot) -> DomainDevisSnapshot:
        orm = OrmDevisSnapshot(
            project_id=snapshot.project_id,
            scenario_id=snapshot.scenario_id,
            version_numero=snapshot.version_numero,
            nom_snapshot=snapshot.nom_snapshot,
            contenu_complet=snapshot.contenu_complet,
            notes=snapshot.notes,
            created_at=snapshot.created_at,
        )
        self._session.add(orm)
        self._session.flush()
        return self._to_domain(orm)

    def list_by_project(self, project_id: int) -> list[DomainDevisSnapshot]:
        stmt = (
            select(OrmDevisSnapshot)
            .where(OrmDevisSnapshot.project_id == project_id)
            .order_by(OrmDevisSnapshot.version_numero, OrmDevisSnapshot.id)
        )
        return [self._to_domain(orm) for orm in self._session.scalars(stmt)]

    def max_version(self, project_id: int) -> int:
        stmt = select(func.max(OrmDevisSnapshot.version_numero)).where(
            OrmDevisSnapshot.project_id == project_id
        )
        return self._session.execute(stmt).scalar() or 0

    def delete_by_project(self, project_id: int) -> int:
        rows = list(
            self._session.scalars(
                select(OrmDevisSnapshot).where(OrmDevisSnapshot.project_id == project_id)
            )
        )
        for orm in rows:
            self._session.delete(orm)
        self._session.flush()
        return len(rows)

    @staticmethod
    def _to_domain(orm: OrmDevisSnapshot) -> DomainDevisSnapshot:
        return DomainDevisSnapshot(
            project_id=orm.project_id,
            scenario_id=orm.scenario_id,
            version_numero=orm.version_numero,
            nom_snapshot=orm.nom_snapshot,
            contenu_complet=orm.contenu_complet,
            notes=orm.notes,
            created_at=orm.created_at,
            id=orm.id,
        )


class SqlAlchemyHistoriqueRepository(HistoriqueRepository):
    """SQLAlchemy adapter for the HistoriqueRepository port (append-only)."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def record(self, entry: DomainHistoriqueDepense) -> DomainHistoriqueDepense:
        orm = OrmHistoriqueDepense(
            project_id=entry.project_id,
            scenario_id=entry.scenario_id,
            expense_id=entry.expense_id,
            action=entry.action.value,
            ancienne_depense_json=entry.ancienne_depense_json,
            raison_changement=entry.raison_changement,
            remplace_par_id=entry.remplace_par_id,
            modifie_par_user_id=entry.modifie_par_user_id,
            date_modification=entry.date_modification,
        )
        self._session.add(orm)
        self._session.flush()
        return self._to_domain(orm)

    def list_by_project(self, project_id: int) -> list[DomainHistoriqueDepense]:
        """Entries newest first; ties broken by insertion order, newest first."""
        stmt = (
            select(OrmHistoriqueDepense)
            .where(OrmHistoriqueDepense.project_id == project_id)
            .order_by(
                OrmHistoriqueDepense.date_modification.desc(),
                OrmHistoriqueDepense.id.desc(),
            )
        )
        return [self._to_domain(orm) for orm in self._session.scalars(stmt)]

    def delete_by_project(self, project_id: int) -> int:
        rows = list(
            self._session.scalars(
                select(OrmHistoriqueDepense).where(
                    OrmHistoriqueDepense.project_id == project_id
                )
            )
        )
        for orm in rows:
            self._session.delete(orm)
        self._session.flush()
        return len(rows)

    @staticmethod
    def _to_domain(orm: OrmHistoriqueDepense) -> DomainHistoriqueDepense:
        return DomainHistoriqueDepense(
            project_id=orm.project_id,
            scenario_id=orm.scenario_id,
            action=ActionHistorique(orm.action),
            ancienne_depense_json=orm.ancienne_depense_json,
            expense_id=orm.expense_id,
            raison_changement=orm.raison_changement,
            remplace_par_id=orm.remplace_par_id,
            modifie_par_user_id=orm.modifie_par_user_id,
            date_modification=orm.date_modification,
            id=orm.id,
        )


class SqlAlchemyPaiementRepository(PaiementPort):
    """Payments collaborator backed by the project_payment_transactions table."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def enregistrer(self, paiement: DomainPaiement) -> DomainPaiement:
        orm = OrmPaiement(
            project_id=paiement.project_id,
            user_id=paiement.user_id,
            type_paiement=paiement.type_paiement,
            montant=paiement.montant,
            date_paiement=paiement.date_paiement,
            notes=paiement.notes,
        )
        self._session.add(orm)
        self._session.flush()
        return self._to_domain(orm)

    def list_by_project(self, project_id: int) -> list[DomainPaiement]:
        stmt = (
            select(OrmPaiement)
            .where(OrmPaiement.project_id == project_id)
            .order_by(OrmPaiement.id)
        )
        return [self._to_domain(orm) for orm in self._session.scalars(stmt)]

    def supprimer_par_projet(self, project_id: int, type_paiement: str) -> int:
        rows = list(
            self._session.scalars(
                select(OrmPaiement)
                .where(OrmPaiement.project_id == project_id)
                .where(OrmPaiement.type_paiement == type_paiement)
            )
        )
        for orm in rows:
            self._session.delete(orm)
        self._session.flush()
        return len(rows)

    @staticmethod
    def _to_domain(orm: OrmPaiement) -> DomainPaiement:
        return DomainPaiement(
            project_id=orm.project_id,
            montant=orm.montant,
            type_paiement=orm.type_paiement,
            user_id=orm.user_id,
            date_paiement=orm.date_paiement,
            notes=orm.notes,
            id=orm.id,
        )


class StaticUserProvider(CurrentUserPort):
    """Auth collaborator returning a fixed user id (scripts, tests, single-user setups)."""

    def __init__(self, user_id: str | None = None) -> None:
        self._user_id = user_id

    def user_id(self) -> str | None:
        return self._user_id
