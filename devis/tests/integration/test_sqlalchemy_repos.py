"""Integration tests for SQLAlchemy repository adapters.

Uses an in-memory SQLite database to verify the adapters correctly
map between ORM models and domain models.
"""

from datetime import date, datetime

import pytest

from devis.adapters.outbound.sqlalchemy_models import (
    Depense as OrmDepense,
    Projet as OrmProjet,
    Scenario as OrmScenario,
)
from devis.adapters.outbound.sqlalchemy_repos import (
    SqlAlchemyDepenseRepository,
    SqlAlchemyHistoriqueRepository,
    SqlAlchemyPaiementRepository,
    SqlAlchemyProjetRepository,
    SqlAlchemyScenarioRepository,
    SqlAlchemySnapshotRepository,
    SqlAlchemyTransaction,
    StaticUserProvider,
)
from domain.exceptions import (
    ConflitConcurrentError,
    DepenseIntrouvableError,
    ProjetIntrouvableError,
)
from domain.models import (
    ActionHistorique,
    Depense,
    DevisSnapshot,
    EtatFinancier,
    HistoriqueDepense,
    Paiement,
    Projet,
    Scenario,
    StatutFinancier,
    StatutLivraison,
)


@pytest.fixture
def projet_id(session):
    orm = OrmProjet(nom="Van")
    session.add(orm)
    session.flush()
    return orm.id


@pytest.fixture
def scenario_id(session, projet_id):
    orm = OrmScenario(project_id=projet_id, nom="Standard", est_principal=True, ordre=1)
    session.add(orm)
    session.flush()
    return orm.id


class TestSqlAlchemyProjetRepository:
    def test_save_and_get(self, session):
        repo = SqlAlchemyProjetRepository(session)
        saved = repo.save(Projet(nom="Van", marque_vehicule="Fiat", modele_vehicule="Ducato"))
        assert saved.id is not None
        loaded = repo.get(saved.id)
        assert loaded.vehicule == "Fiat Ducato"
        assert loaded.etat.statut_financier is StatutFinancier.BROUILLON

    def test_get_missing(self, session):
        assert SqlAlchemyProjetRepository(session).get(999) is None

    def test_update_etat(self, session, projet_id):
        repo = SqlAlchemyProjetRepository(session)
        moment = datetime(2024, 3, 1, 10, 0)
        projet = repo.update_etat(
            projet_id,
            EtatFinancier(
                statut_financier=StatutFinancier.DEVIS_ACCEPTE,
                date_validation_devis=moment,
                montant_acompte=500.0,
            ),
        )
        assert projet.etat.statut_financier is StatutFinancier.DEVIS_ACCEPTE
        assert projet.etat.montant_acompte == 500.0
        assert repo.get(projet_id).etat.date_validation_devis == moment

    def test_update_etat_unknown_project(self, session):
        with pytest.raises(ProjetIntrouvableError):
            SqlAlchemyProjetRepository(session).update_etat(404, EtatFinancier())

    def test_unknown_status_falls_back_to_draft(self, session):
        orm = OrmProjet(nom="Legacy", statut_financier="archive")
        session.add(orm)
        session.flush()
        assert (
            SqlAlchemyProjetRepository(session).get(orm.id).etat.statut_financier
            is StatutFinancier.BROUILLON
        )


class TestSqlAlchemyScenarioRepository:
    def test_add_sets_initial_version(self, session, projet_id):
        repo = SqlAlchemyScenarioRepository(session)
        scenario = repo.add(Scenario(project_id=projet_id, nom="Premium"))
        assert scenario.id is not None
        assert scenario.version == 1

    def test_list_by_project_orders_by_ordre(self, session, projet_id):
        repo = SqlAlchemyScenarioRepository(session)
        repo.add(Scenario(project_id=projet_id, nom="B", ordre=2))
        repo.add(Scenario(project_id=projet_id, nom="A", ordre=1))
        assert [s.nom for s in repo.list_by_project(projet_id)] == ["A", "B"]

    def test_update_bumps_version(self, session, projet_id):
        repo = SqlAlchemyScenarioRepository(session)
        scenario = repo.add(Scenario(project_id=projet_id, nom="A"))
        scenario.nom = "A bis"
        updated = repo.update(scenario)
        assert updated.nom == "A bis"
        assert updated.version == 2

    def test_update_with_stale_version_raises(self, session, projet_id):
        repo = SqlAlchemyScenarioRepository(session)
        scenario = repo.add(Scenario(project_id=projet_id, nom="A"))
        repo.update(Scenario(**{**scenario.__dict__, "nom": "B"}))
        with pytest.raises(ConflitConcurrentError) as exc_info:
            repo.update(scenario)
        assert exc_info.value.version_attendue == 1
        assert exc_info.value.version_actuelle == 2


class TestSqlAlchemyDepenseRepository:
    def _add(self, repo, scenario_id, projet_id, nom="Lit", **kwargs):
        return repo.add(
            Depense(scenario_id=scenario_id, project_id=projet_id, nom_accessoire=nom, **kwargs)
        )

    def test_roundtrip_preserves_fields(self, session, projet_id, scenario_id):
        repo = SqlAlchemyDepenseRepository(session)
        saved = self._add(
            repo, scenario_id, projet_id, nom="Batterie 100Ah", categorie="Électrique",
            prix=650.0, quantite=2, prix_vente_ttc=890.0, marque="Victron",
            statut_livraison=StatutLivraison.LIVRE,
        )
        loaded = repo.get(saved.id)
        assert loaded == saved
        assert loaded.statut_livraison is StatutLivraison.LIVRE

    def test_list_by_scenario_includes_archived(self, session, projet_id, scenario_id):
        repo = SqlAlchemyDepenseRepository(session)
        self._add(repo, scenario_id, projet_id, nom="a")
        self._add(repo, scenario_id, projet_id, nom="b", est_archive=True)
        assert [d.nom_accessoire for d in repo.list_by_scenario(scenario_id)] == ["a", "b"]

    def test_update_with_stale_version_raises(self, session, projet_id, scenario_id):
        repo = SqlAlchemyDepenseRepository(session)
        depense = self._add(repo, scenario_id, projet_id, prix=10.0)
        depense.prix = 12.0
        repo.update(depense)
        with pytest.raises(ConflitConcurrentError):
            repo.update(depense)

    def test_delete_missing_raises(self, session):
        with pytest.raises(DepenseIntrouvableError):
            SqlAlchemyDepenseRepository(session).delete(123)

    def test_delete_by_scenario(self, session, projet_id, scenario_id):
        repo = SqlAlchemyDepenseRepository(session)
        self._add(repo, scenario_id, projet_id)
        self._add(repo, scenario_id, projet_id)
        assert repo.delete_by_scenario(scenario_id) == 2
        assert session.query(OrmDepense).count() == 0

    def test_set_statut_livraison(self, session, projet_id, scenario_id):
        repo = SqlAlchemyDepenseRepository(session)
        self._add(repo, scenario_id, projet_id)
        self._add(repo, scenario_id, projet_id)
        assert repo.set_statut_livraison(scenario_id, StatutLivraison.COMMANDE) == 2
        assert {d.statut_livraison for d in repo.list_by_scenario(scenario_id)} == {
            StatutLivraison.COMMANDE
        }
        repo.set_statut_livraison(scenario_id, None)
        assert {d.statut_livraison for d in repo.list_by_scenario(scenario_id)} == {None}


class TestSqlAlchemySnapshotRepository:
    def test_max_version_and_json_content(self, session, projet_id, scenario_id):
        repo = SqlAlchemySnapshotRepository(session)
        assert repo.max_version(projet_id) == 0
        for version in (1, 2):
            repo.add(
                DevisSnapshot(
                    project_id=projet_id, scenario_id=scenario_id,
                    version_numero=version, nom_snapshot="Devis validé",
                    contenu_complet={"totaux": {"total_achat_ht": 100.0 * version}},
                )
            )
        assert repo.max_version(projet_id) == 2
        snapshots = repo.list_by_project(projet_id)
        assert [s.version_numero for s in snapshots] == [1, 2]
        assert snapshots[1].contenu_complet["totaux"]["total_achat_ht"] == 200.0

    def test_delete_by_project(self, session, projet_id, scenario_id):
        repo = SqlAlchemySnapshotRepository(session)
        repo.add(
            DevisSnapshot(
                project_id=projet_id, scenario_id=scenario_id, version_numero=1,
                nom_snapshot="Devis validé", contenu_complet={},
            )
        )
        assert repo.delete_by_project(projet_id) == 1
        assert repo.list_by_project(projet_id) == []


class TestSqlAlchemyHistoriqueRepository:
    def test_list_newest_first(self, session, projet_id, scenario_id):
        repo = SqlAlchemyHistoriqueRepository(session)
        for jour, action in ((1, ActionHistorique.AJOUT), (2, ActionHistorique.MODIFICATION)):
            repo.record(
                HistoriqueDepense(
                    project_id=projet_id, scenario_id=scenario_id, action=action,
                    ancienne_depense_json={"nom_accessoire": "Lit"},
                    date_modification=datetime(2024, 1, jour),
                )
            )
        entries = repo.list_by_project(projet_id)
        assert [e.action for e in entries] == [
            ActionHistorique.MODIFICATION, ActionHistorique.AJOUT,
        ]
        assert entries[0].ancienne_depense_json == {"nom_accessoire": "Lit"}


class TestSqlAlchemyPaiementRepository:
    def test_record_and_delete_by_type(self, session, projet_id):
        repo = SqlAlchemyPaiementRepository(session)
        repo.enregistrer(Paiement(project_id=projet_id, montant=500.0, date_paiement=date(2024, 1, 1)))
        repo.enregistrer(Paiement(project_id=projet_id, montant=2000.0, type_paiement="solde"))
        assert repo.supprimer_par_projet(projet_id, "acompte") == 1
        restants = repo.list_by_project(projet_id)
        assert [p.type_paiement for p in restants] == ["solde"]


class TestSqlAlchemyTransaction:
    def test_rollback_discards_flushed_rows(self, session, projet_id):
        session.commit()
        repo = SqlAlchemyScenarioRepository(session)
        repo.add(Scenario(project_id=projet_id, nom="Temporaire"))
        SqlAlchemyTransaction(session).rollback()
        assert repo.list_by_project(projet_id) == []


def test_static_user_provider():
    assert StaticUserProvider("u-1").user_id() == "u-1"
    assert StaticUserProvider().user_id() is None
