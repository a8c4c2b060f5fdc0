"""Read-model cache adapters implementing CachePort.

Both adapters share one key scheme::

    projet:{project_id}:scenario:{scenario_id}:totaux
    projet:{project_id}:scenario:{scenario_id}:energie

and store the read models as plain dicts, rebuilt into ``Totaux`` /
``BilanEnergie`` on the way out. Dropping a project removes every key under
``projet:{project_id}:``.
"""

from __future__ import annotations

import json
import logging
from abc import abstractmethod
from dataclasses import asdict

from domain.models import BilanEnergie, Totaux
from domain.ports import CachePort

logger = logging.getLogger(__name__)

VUE_TOTAUX = "totaux"
VUE_ENERGIE = "energie"


def cle_projet(project_id: int) -> str:
    """Prefix covering every read model of a project."""
    return f"projet:{project_id}:"


def cle_vue(project_id: int, scenario_id: int, vue: str) -> str:
    return f"{cle_projet(project_id)}scenario:{scenario_id}:{vue}"


class _ReadModelCache(CachePort):
    """Key scheme and dataclass codec; subclasses provide the storage."""

    def get_totaux(self, project_id: int, scenario_id: int) -> Totaux | None:
        data = self._lire(cle_vue(project_id, scenario_id, VUE_TOTAUX))
        return Totaux(**data) if data else None

    def set_totaux(self, project_id: int, scenario_id: int, totaux: Totaux) -> None:
        self._ecrire(cle_vue(project_id, scenario_id, VUE_TOTAUX), asdict(totaux))

    def get_bilan(self, project_id: int, scenario_id: int) -> BilanEnergie | None:
        data = self._lire(cle_vue(project_id, scenario_id, VUE_ENERGIE))
        return BilanEnergie(**data) if data else None

    def set_bilan(self, project_id: int, scenario_id: int, bilan: BilanEnergie) -> None:
        self._ecrire(cle_vue(project_id, scenario_id, VUE_ENERGIE), asdict(bilan))

    def invalider_projet(self, project_id: int) -> None:
        supprimees = self._supprimer(cle_projet(project_id))
        logger.debug("Cache du projet %s invalidé (%d clés)", project_id, supprimees)

    @abstractmethod
    def _lire(self, cle: str) -> dict | None: ...

    @abstractmethod
    def _ecrire(self, cle: str, data: dict) -> None: ...

    @abstractmethod
    def _supprimer(self, prefixe: str) -> int: ...


class RedisCacheAdapter(_ReadModelCache):
    """Read models as JSON strings in Redis, under the ``devis:`` namespace.

    With no client every read misses and every write is dropped, so the
    services recompute on each call.
    """

    NAMESPACE = "devis:"

    def __init__(self, redis_client=None, ttl: int = 3600):
        self._redis = redis_client
        self._ttl = ttl

    def _lire(self, cle):
        if self._redis is None:
            return None
        raw = self._redis.get(self.NAMESPACE + cle)
        return json.loads(raw) if raw is not None else None

    def _ecrire(self, cle, data):
        if self._redis is None:
            return
        self._redis.setex(self.NAMESPACE + cle, self._ttl, json.dumps(data))

    def _supprimer(self, prefixe):
        if self._redis is None:
            return 0
        cles = list(self._redis.scan_iter(f"{self.NAMESPACE}{prefixe}*"))
        if cles:
            self._redis.delete(*cles)
        return len(cles)


class InMemoryCacheAdapter(_ReadModelCache):
    """Dict-backed cache for tests and single-process runs; no expiry."""

    def __init__(self):
        self.entrees: dict[str, dict] = {}

    def _lire(self, cle):
        data = self.entrees.get(cle)
        return dict(data) if data is not None else None

    def _ecrire(self, cle, data):
        self.entrees[cle] = dict(data)

    def _supprimer(self, prefixe):
        cles = [cle for cle in self.entrees if cle.startswith(prefixe)]
        for cle in cles:
            del self.entrees[cle]
        return len(cles)


def connect_redis(redis_url: str | None):
    """Return a connected Redis client, or None when Redis is not reachable."""
    if not redis_url:
        return None
    import redis

    try:
        client = redis.from_url(redis_url)
        client.ping()
    except redis.RedisError:
        logger.warning("Redis indisponible (%s), cache désactivé", redis_url)
        return None
    return client
