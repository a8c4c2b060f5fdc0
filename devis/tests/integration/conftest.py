import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from devis.adapters.outbound.redis_cache import InMemoryCacheAdapter
from devis.adapters.outbound.sqlalchemy_models import Base
from devis.adapters.outbound.sqlalchemy_repos import SqlAlchemyDepenseRepository, StaticUserProvider
from devis.app import build_services
from devis.config import DEFAULTS
from domain.clock import FixedClock
from domain.models import Depense, Projet


@pytest.fixture
def engine():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def session(engine):
    """Create an in-memory SQLite session with schema initialized."""
    with Session(engine) as s:
        yield s


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def cache():
    return InMemoryCacheAdapter()


@pytest.fixture
def make_services(session, clock, cache):
    """Factory building the service set with config overrides."""

    def _make(raison_obligatoire=False, admin=False, user_id="atelier"):
        config = {
            **DEFAULTS,
            "audit": {"raison_obligatoire": raison_obligatoire},
            "admin": {"actions_autorisees": admin},
        }
        return build_services(
            session, config, cache=cache,
            utilisateur=StaticUserProvider(user_id), clock=clock,
        )

    return _make


@pytest.fixture
def services(make_services):
    return make_services()


@pytest.fixture
def depenses_repo(session):
    return SqlAlchemyDepenseRepository(session)


@pytest.fixture
def projet(services, session):
    projet = services.projets.save(
        Projet(
            nom="Aménagement Trafic", nom_proprietaire="Camille Martin",
            marque_vehicule="Renault", modele_vehicule="Trafic",
        )
    )
    session.commit()
    return projet


@pytest.fixture
def ajouter(services):
    """Add an expense through the auditor (the only write path)."""

    def _ajouter(scenario, nom, prix, quantite=1, vente=None, categorie="Électrique"):
        return services.audit.ajouter_depense(
            Depense(
                scenario_id=scenario.id, project_id=scenario.project_id,
                nom_accessoire=nom, categorie=categorie, prix=prix,
                quantite=quantite, prix_vente_ttc=vente,
            )
        )

    return _ajouter