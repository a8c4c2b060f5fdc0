"""Domain ports: abstract interfaces implemented by the outbound adapters.

Only stdlib (abc) and domain.models imports allowed.

Repository adapters persist within the caller's transaction (flush only);
the domain services own commit/rollback through ``TransactionPort``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from domain.models import (
    BilanEnergie,
    Depense,
    DevisSnapshot,
    EtatFinancier,
    HistoriqueDepense,
    Paiement,
    Projet,
    Scenario,
    StatutLivraison,
    Totaux,
)


# ── Repository Ports ──────────────────────────────────────────────────────


class ProjetRepository(ABC):
    """Persistence port for projects and their financial state."""

    @abstractmethod
    def get(self, project_id: int) -> Projet | None: ...

    @abstractmethod
    def save(self, projet: Projet) -> Projet: ...

    @abstractmethod
    def update_etat(self, project_id: int, etat: EtatFinancier) -> Projet: ...


class ScenarioRepository(ABC):
    """Persistence port for scenarios."""

    @abstractmethod
    def get(self, scenario_id: int) -> Scenario | None: ...

    @abstractmethod
    def list_by_project(self, project_id: int) -> list[Scenario]: ...

    @abstractmethod
    def add(self, scenario: Scenario) -> Scenario: ...

    @abstractmethod
    def update(self, scenario: Scenario) -> Scenario:
        """Persist changes; raise ConflitConcurrentError if ``scenario.version`` is stale."""

    @abstractmethod
    def delete(self, scenario_id: int) -> None: ...


class DepenseRepository(ABC):
    """Persistence port for expenses (archived lines included)."""

    @abstractmethod
    def get(self, depense_id: int) -> Depense | None: ...

    @abstractmethod
    def list_by_scenario(self, scenario_id: int) -> list[Depense]: ...

    @abstractmethod
    def add(self, depense: Depense) -> Depense: ...

    @abstractmethod
    def update(self, depense: Depense) -> Depense:
        """Persist changes; raise ConflitConcurrentError if ``depense.version`` is stale."""

    @abstractmethod
    def delete(self, depense_id: int) -> None: ...

    @abstractmethod
    def delete_by_scenario(self, scenario_id: int) -> int: ...

    @abstractmethod
    def set_statut_livraison(
        self, scenario_id: int, statut: StatutLivraison | None
    ) -> int: ...


class SnapshotRepository(ABC):
    """Persistence port for quote snapshots (insert-only)."""

    @abstractmethod
    def add(self, snapshot: DevisSnapshot) -> DevisSnapshot: ...

    @abstractmethod
    def list_by_project(self, project_id: int) -> list[DevisSnapshot]: ...

    @abstractmethod
    def max_version(self, project_id: int) -> int: ...

    @abstractmethod
    def delete_by_project(self, project_id: int) -> int: ...


class HistoriqueRepository(ABC):
    """Persistence port for the expense audit trail (append-only)."""

    @abstractmethod
    def record(self, entry: HistoriqueDepense) -> HistoriqueDepense: ...

    @abstractmethod
    def list_by_project(self, project_id: int) -> list[HistoriqueDepense]:
        """Entries newest first."""

    @abstractmethod
    def delete_by_project(self, project_id: int) -> int: ...


# ── Collaborator Ports ────────────────────────────────────────────────────


class PaiementPort(ABC):
    """Port to the payments collaborator."""

    @abstractmethod
    def enregistrer(self, paiement: Paiement) -> Paiement: ...

    @abstractmethod
    def list_by_project(self, project_id: int) -> list[Paiement]: ...

    @abstractmethod
    def supprimer_par_projet(self, project_id: int, type_paiement: str) -> int: ...


class CurrentUserPort(ABC):
    """Port to the auth collaborator: opaque id of the acting user."""

    @abstractmethod
    def user_id(self) -> str | None: ...


# ── Infrastructure Ports ──────────────────────────────────────────────────


class TransactionPort(ABC):
    """Commit/rollback boundary shared by every repository of a request."""

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...


class CachePort(ABC):
    """Port for the per-project read-model cache (Redis, in-memory, etc.).

    Entries are scoped to a project so that any mutation can drop every read
    model of that project at once.
    """

    @abstractmethod
    def get_totaux(self, project_id: int, scenario_id: int) -> Totaux | None: ...

    @abstractmethod
    def set_totaux(self, project_id: int, scenario_id: int, totaux: Totaux) -> None: ...

    @abstractmethod
    def get_bilan(self, project_id: int, scenario_id: int) -> BilanEnergie | None: ...

    @abstractmethod
    def set_bilan(self, project_id: int, scenario_id: int, bilan: BilanEnergie) -> None: ...

    @abstractmethod
    def invalider_projet(self, project_id: int) -> None: ...
