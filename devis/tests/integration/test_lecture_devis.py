"""Read-model facade: cached totals and energy balance, comparison."""

import pytest

from domain.exceptions import ScenarioIntrouvableError
from domain.models import Classement


class TestCachedReadModels:
    def test_totals_are_cached_per_scenario(self, services, projet, ajouter, cache):
        scenario = services.scenarios.create_scenario(projet.id, "Standard")
        ajouter(scenario, "Lit fixe", 420.0, vente=600.0)
        totaux = services.lecture.totaux(scenario.id)
        assert totaux.total_achat == 420.0
        assert cache.get_totaux(projet.id, scenario.id) == totaux
        assert f"projet:{projet.id}:scenario:{scenario.id}:totaux" in cache.entrees

    def test_mutation_invalidates_project_cache(self, services, projet, ajouter, cache):
        scenario = services.scenarios.create_scenario(projet.id, "Standard")
        depense = ajouter(scenario, "Lit fixe", 420.0)
        assert services.lecture.totaux(scenario.id).total_achat == 420.0
        services.audit.modifier_depense(depense.id, {"prix": 500.0})
        assert cache.get_totaux(projet.id, scenario.id) is None
        assert services.lecture.totaux(scenario.id).total_achat == 500.0

    def test_missing_energy_balance_is_not_cached(self, services, projet, ajouter, cache):
        scenario = services.scenarios.create_scenario(projet.id, "Standard")
        ajouter(scenario, "Lit fixe", 420.0)
        assert services.lecture.bilan_energie(scenario.id) is None
        assert cache.get_bilan(projet.id, scenario.id) is None
        assert services.lecture.bilan_energie(scenario.id) is None

    def test_energy_balance(self, services, projet, ajouter, cache):
        scenario = services.scenarios.create_scenario(projet.id, "Standard")
        ajouter(scenario, "Panneau solaire 150W", 180.0, quantite=2)
        ajouter(scenario, "Batterie lithium 100Ah", 650.0)
        bilan = services.lecture.bilan_energie(scenario.id)
        assert bilan.production_w == 300
        assert bilan.autonomie_jours == 0.8
        assert cache.get_bilan(projet.id, scenario.id) == bilan
        assert services.lecture.bilan_energie(scenario.id) == bilan

    def test_unknown_scenario(self, services):
        with pytest.raises(ScenarioIntrouvableError):
            services.lecture.totaux(999)


def test_comparison_against_principal(services, projet, ajouter):
    standard = services.scenarios.create_scenario(projet.id, "Standard")
    premium = services.scenarios.create_scenario(projet.id, "Premium")
    ajouter(standard, "Batterie lithium", 100.0)
    ajouter(premium, "Batterie lithium", 120.0)

    tableau = services.lecture.comparaison(projet.id)

    assert tableau.reference_id == standard.id
    ecart = tableau.lignes[0].ecarts[premium.id]
    assert ecart.classement is Classement.DEFAVORABLE
    assert ecart.libelle == "+20.00€"
