"""Composition root: wires SQLAlchemy adapters and cache into domain services."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from devis.adapters.outbound.redis_cache import RedisCacheAdapter, connect_redis
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
from devis.config import load_config
from devis.data.db import get_engine, get_session, init_db
from devis.logging_config import configure_logging
from domain.change_auditor import ChangeAuditor
from domain.clock import Clock
from domain.energie import HeuristicNameExtractor
from domain.lecture import LectureDevisService
from domain.lock_manager import LockManager
from domain.ports import CachePort, CurrentUserPort
from domain.scenario_registry import ScenarioRegistry


@dataclass
class Services:
    """Domain services sharing one session (hence one transaction)."""

    projets: SqlAlchemyProjetRepository
    scenarios: ScenarioRegistry
    verrou: LockManager
    audit: ChangeAuditor
    lecture: LectureDevisService


def build_services(
    session: Session,
    config: dict,
    cache: CachePort | None = None,
    utilisateur: CurrentUserPort | None = None,
    clock: Clock | None = None,
) -> Services:
    """Instantiate every adapter over *session* and hand them to the services."""
    projets = SqlAlchemyProjetRepository(session)
    scenarios = SqlAlchemyScenarioRepository(session)
    depenses = SqlAlchemyDepenseRepository(session)
    snapshots = SqlAlchemySnapshotRepository(session)
    historique = SqlAlchemyHistoriqueRepository(session)
    paiements = SqlAlchemyPaiementRepository(session)
    tx = SqlAlchemyTransaction(session)
    utilisateur = utilisateur or StaticUserProvider()
    extractor = HeuristicNameExtractor()

    energie = config.get("energie", {})
    tension_v = energie.get("tension_batterie", 12)
    heures = energie.get("heures_ensoleillement", 5)
    admin_actions = bool(config.get("admin", {}).get("actions_autorisees", False))

    return Services(
        projets=projets,
        scenarios=ScenarioRegistry(
            scenarios, depenses, snapshots, historique, tx, cache=cache
        ),
        verrou=LockManager(
            projets, scenarios, depenses, snapshots, paiements, tx,
            utilisateur=utilisateur,
            clock=clock,
            extractor=extractor,
            cache=cache,
            admin_actions=admin_actions,
            tension_v=tension_v,
            heures_ensoleillement=heures,
        ),
        audit=ChangeAuditor(
            scenarios, depenses, historique, snapshots, tx,
            utilisateur=utilisateur,
            clock=clock,
            cache=cache,
            raison_obligatoire=bool(
                config.get("audit", {}).get("raison_obligatoire", False)
            ),
            admin_actions=admin_actions,
        ),
        lecture=LectureDevisService(
            scenarios, depenses, historique, snapshots,
            cache=cache,
            extractor=extractor,
            tension_v=tension_v,
            heures_ensoleillement=heures,
        ),
    )


def bootstrap(config_path: str | None = None, user_id: str | None = None):
    """Load config, set up logging, DB and cache; return ``(session, services)``."""
    config = load_config(config_path)
    configure_logging(config["logging"]["level"])
    engine = init_db(get_engine(config["database"]["url"]))
    session = get_session(engine)
    cache = RedisCacheAdapter(
        redis_client=connect_redis(config["cache"]["redis_url"]),
        ttl=config["cache"]["ttl"],
    )
    services = build_services(
        session, config, cache=cache, utilisateur=StaticUserProvider(user_id)
    )
    return session, services
