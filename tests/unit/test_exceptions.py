import pytest

from domain.exceptions import (
    ActionAdministrativeInterditeError,
    ConflitConcurrentError,
    DejaVerrouilleError,
    DepenseIntrouvableError,
    DevisError,
    EtapeVerrouillageError,
    IntrouvableError,
    ProjetIntrouvableError,
    ScenarioIntrouvableError,
    ScenarioArchiveError,
    ScenarioPrincipalManquantError,
    ScenarioVerrouilleError,
    SuppressionPrincipalError,
    ValidationError,
)


@pytest.mark.parametrize("exc", [
    ScenarioPrincipalManquantError(1),
    SuppressionPrincipalError(1),
    DejaVerrouilleError(1),
    ScenarioVerrouilleError(1),
    ScenarioArchiveError(1, snapshots=1, entrees=0),
])
def test_validation_family(exc):
    assert isinstance(exc, ValidationError)
    assert isinstance(exc, DevisError)


@pytest.mark.parametrize("cls", [
    ProjetIntrouvableError, ScenarioIntrouvableError, DepenseIntrouvableError,
])
def test_not_found_family(cls):
    exc = cls(42)
    assert isinstance(exc, IntrouvableError)
    assert exc.identifiant == 42
    assert "42" in str(exc)


def test_codes_are_distinct():
    classes = [
        ValidationError, ScenarioPrincipalManquantError, SuppressionPrincipalError,
        DejaVerrouilleError, ScenarioVerrouilleError, ScenarioArchiveError, IntrouvableError,
        ProjetIntrouvableError, ScenarioIntrouvableError, DepenseIntrouvableError,
        ConflitConcurrentError, ActionAdministrativeInterditeError, EtapeVerrouillageError,
    ]
    codes = [c.code for c in classes]
    assert len(set(codes)) == len(codes)


def test_principal_missing_mentions_scenario_when_given():
    exc = ScenarioPrincipalManquantError(3, scenario_id=9)
    assert exc.project_id == 3
    assert exc.scenario_id == 9
    assert "9" in str(exc)


def test_conflict_carries_versions():
    exc = ConflitConcurrentError("Dépense", 5, attendue=1, actuelle=2)
    assert exc.version_attendue == 1
    assert exc.version_actuelle == 2
    assert exc.code == "CONCURRENT_MODIFICATION"


def test_lock_step_error_keeps_cause():
    cause = RuntimeError("disk full")
    exc = EtapeVerrouillageError("paiement_acompte", cause)
    assert exc.etape == "paiement_acompte"
    assert exc.cause is cause
    assert "paiement_acompte" in str(exc)
