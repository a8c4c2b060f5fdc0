from domain.analytics.aggregation import compute_energy_balance
from domain.energie import EnergyExtractor, HeuristicNameExtractor
from domain.models import Depense


def _depense(nom, categorie=None, quantite=1):
    return Depense(
        scenario_id=1, project_id=1, nom_accessoire=nom,
        categorie=categorie, quantite=quantite,
    )


extractor = HeuristicNameExtractor()


def test_panel_wattage_from_name():
    assert extractor.puissance_w(_depense("Panneau solaire 150W")) == 150


def test_wattage_is_case_insensitive_with_space():
    assert extractor.puissance_w(_depense("PANNEAU souple 100 w")) == 100


def test_electric_category_counts_as_production():
    assert extractor.puissance_w(_depense("Kit solaire 200W", categorie="Électrique")) == 200


def test_name_without_production_term_is_ignored():
    assert extractor.puissance_w(_depense("Ventilateur 40W")) is None


def test_production_term_without_wattage():
    assert extractor.puissance_w(_depense("Panneau bois")) is None


def test_battery_capacity_from_name():
    assert extractor.capacite_ah(_depense("Batterie lithium 100Ah")) == 100


def test_non_battery_has_no_capacity():
    assert extractor.capacite_ah(_depense("Panneau solaire 150W")) is None


def test_custom_extractor_replaces_heuristic():
    class StructuredExtractor(EnergyExtractor):
        def puissance_w(self, depense):
            return 50 if depense.marque == "X" else None

        def capacite_ah(self, depense):
            return None

    depense = _depense("Module sans nom", quantite=3)
    depense.marque = "X"
    bilan = compute_energy_balance([depense], extractor=StructuredExtractor())
    assert bilan.production_w == 150
