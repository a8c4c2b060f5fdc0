"""Typed exceptions for the quote engine.

Every error carries a machine-readable ``code`` so callers catch by type
and report by code, never by parsing messages.

    DevisError
    +-- ValidationError
    |   +-- ScenarioPrincipalManquantError
    |   +-- SuppressionPrincipalError
    |   +-- DejaVerrouilleError
    |   +-- ScenarioVerrouilleError
    |   +-- ScenarioArchiveError
    +-- IntrouvableError
    |   +-- ProjetIntrouvableError
    |   +-- ScenarioIntrouvableError
    |   +-- DepenseIntrouvableError
    +-- ConflitConcurrentError
    +-- ActionAdministrativeInterditeError
    +-- EtapeVerrouillageError
"""

from __future__ import annotations


class DevisError(Exception):
    """Base class of every quote-engine error."""

    code: str = "DEVIS_ERROR"


# ── Validation (rejected before any write) ──────────────────────────────


class ValidationError(DevisError):
    code = "VALIDATION_ERROR"


class ScenarioPrincipalManquantError(ValidationError):
    code = "PRINCIPAL_SCENARIO_MISSING"

    def __init__(self, project_id: int, scenario_id: int | None = None):
        self.project_id = project_id
        self.scenario_id = scenario_id
        if scenario_id is None:
            msg = f"Le projet {project_id} n'a pas de scénario principal"
        else:
            msg = (
                f"Le scénario {scenario_id} n'est pas le scénario principal "
                f"du projet {project_id}"
            )
        super().__init__(msg)


class SuppressionPrincipalError(ValidationError):
    code = "PRINCIPAL_SCENARIO_DELETION"

    def __init__(self, scenario_id: int):
        self.scenario_id = scenario_id
        super().__init__("Impossible de supprimer le scénario principal")


class DejaVerrouilleError(ValidationError):
    code = "ALREADY_LOCKED"

    def __init__(self, scenario_id: int):
        self.scenario_id = scenario_id
        super().__init__(f"Le scénario {scenario_id} est déjà verrouillé")


class ScenarioVerrouilleError(ValidationError):
    code = "SCENARIO_LOCKED"

    def __init__(self, scenario_id: int, message: str | None = None):
        self.scenario_id = scenario_id
        super().__init__(message or f"Le scénario {scenario_id} est verrouillé")


class ScenarioArchiveError(ValidationError):
    """The scenario is referenced by quote snapshots or audit entries."""

    code = "SCENARIO_HAS_ARCHIVE"

    def __init__(self, scenario_id: int, snapshots: int, entrees: int):
        self.scenario_id = scenario_id
        self.snapshots = snapshots
        self.entrees = entrees
        super().__init__(
            f"Le scénario {scenario_id} est référencé par {snapshots} devis figés "
            f"et {entrees} entrées d'historique, suppression impossible"
        )


# ── Lookups ─────────────────────────────────────────────────────────────


class IntrouvableError(DevisError):
    code = "NOT_FOUND"
    entite = "objet"

    def __init__(self, identifiant):
        self.identifiant = identifiant
        super().__init__(f"{self.entite.capitalize()} {identifiant} introuvable")


class ProjetIntrouvableError(IntrouvableError):
    code = "PROJECT_NOT_FOUND"
    entite = "projet"


class ScenarioIntrouvableError(IntrouvableError):
    code = "SCENARIO_NOT_FOUND"
    entite = "scénario"


class DepenseIntrouvableError(IntrouvableError):
    code = "EXPENSE_NOT_FOUND"
    entite = "dépense"


# ── Concurrency / authorization / persistence ──────────────────────────


class ConflitConcurrentError(DevisError):
    code = "CONCURRENT_MODIFICATION"

    def __init__(self, entite: str, identifiant, attendue: int, actuelle: int):
        self.entite = entite
        self.identifiant = identifiant
        self.version_attendue = attendue
        self.version_actuelle = actuelle
        super().__init__(
            f"{entite} {identifiant} modifié entre-temps "
            f"(version {actuelle}, attendue {attendue})"
        )


class ActionAdministrativeInterditeError(DevisError):
    code = "ADMIN_ACTION_FORBIDDEN"

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Action administrative non autorisée : {action}")


class EtapeVerrouillageError(DevisError):
    """A persistence step of the lock sequence failed; the lock was rolled back."""

    code = "LOCK_STEP_FAILED"

    def __init__(self, etape: str, cause: Exception):
        self.etape = etape
        self.cause = cause
        super().__init__(f"Échec de l'étape '{etape}' du verrouillage : {cause}")
