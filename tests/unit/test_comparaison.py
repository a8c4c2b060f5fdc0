"""Tests for the cross-scenario comparison engine."""

import pytest

from domain.comparaison import build_comparison, cle_article, comparer
from domain.models import Classement, Depense, Scenario


def _scenario(id, nom, principal=False):
    return Scenario(project_id=1, nom=nom, est_principal=principal, id=id)


def _depense(scenario_id, nom, prix, quantite=1, categorie="Électrique", archive=False):
    return Depense(
        scenario_id=scenario_id, project_id=1, nom_accessoire=nom,
        categorie=categorie, prix=prix, quantite=quantite, est_archive=archive,
    )


REF = _scenario(1, "Standard", principal=True)
ALT = _scenario(2, "Premium")


# ── comparer ─────────────────────────────────────────────────────────────


def test_higher_value_is_unfavorable():
    ecart = comparer(120.0, 100.0)
    assert ecart.classement is Classement.DEFAVORABLE
    assert ecart.classement.value == "unfavorable"
    assert ecart.delta == 20.0
    assert ecart.libelle == "+20.00€"


def test_lower_value_is_favorable():
    ecart = comparer(85.5, 100.0)
    assert ecart.classement is Classement.FAVORABLE
    assert ecart.libelle == "-14.50€"


def test_equal_values_render_no_delta():
    ecart = comparer(100.0, 100.0)
    assert ecart.classement is Classement.NEUTRE
    assert ecart.libelle is None


def test_sub_cent_difference_is_neutral():
    assert comparer(100.001, 100.0).classement is Classement.NEUTRE


def test_cle_article_defaults_category():
    depense = _depense(1, "Vis", 1.0, categorie=None)
    assert cle_article(depense) == "Autre_Vis"


# ── build_comparison ─────────────────────────────────────────────────────


class TestBuildComparison:
    def test_reference_100_vs_120_is_unfavorable(self):
        tableau = build_comparison(
            [REF, ALT],
            {1: [_depense(1, "Batterie", 100.0)], 2: [_depense(2, "Batterie", 120.0)]},
        )
        ligne = tableau.lignes[0]
        ecart = ligne.ecarts[2]
        assert ecart.classement is Classement.DEFAVORABLE
        assert ecart.libelle == "+20.00€"
        assert 1 not in ligne.ecarts

    def test_equal_totals_have_no_label(self):
        tableau = build_comparison(
            [REF, ALT],
            {1: [_depense(1, "Batterie", 100.0)], 2: [_depense(2, "Batterie", 50.0, quantite=2)]},
        )
        assert tableau.lignes[0].ecarts[2].libelle is None

    def test_missing_item_is_none(self):
        tableau = build_comparison(
            [REF, ALT],
            {1: [_depense(1, "Batterie", 100.0)], 2: []},
        )
        ligne = tableau.lignes[0]
        assert ligne.par_scenario[2] is None
        assert ligne.ecarts[2] is None

    def test_item_absent_from_reference_has_no_ecart(self):
        tableau = build_comparison(
            [REF, ALT],
            {1: [], 2: [_depense(2, "Onduleur", 300.0)]},
        )
        ligne = tableau.lignes[0]
        assert ligne.par_scenario[1] is None
        assert ligne.par_scenario[2].total == 300.0
        assert ligne.ecarts[2] is None

    def test_without_principal_every_ecart_is_none(self):
        a = _scenario(1, "A")
        b = _scenario(2, "B")
        tableau = build_comparison(
            [a, b],
            {1: [_depense(1, "Batterie", 100.0)], 2: [_depense(2, "Batterie", 120.0)]},
        )
        assert tableau.reference_id is None
        assert tableau.lignes[0].ecarts == {1: None, 2: None}
        assert tableau.ecarts_totaux == {1: None, 2: None}

    def test_groups_follow_first_appearance(self):
        tableau = build_comparison(
            [REF, ALT],
            {
                1: [
                    _depense(1, "Panneau", 200.0, categorie="Électrique"),
                    _depense(1, "Laine", 90.0, categorie="Isolation"),
                ],
                2: [
                    _depense(2, "Lit", 400.0, categorie="Mobilier"),
                    _depense(2, "Batterie", 600.0, categorie="Électrique"),
                ],
            },
        )
        assert [g.categorie for g in tableau.groupes] == ["Électrique", "Isolation", "Mobilier"]
        assert [l.nom for l in tableau.groupes[0].lignes] == ["Panneau", "Batterie"]

    def test_duplicate_keys_are_merged(self):
        tableau = build_comparison(
            [REF],
            {1: [_depense(1, "Câble", 10.0, quantite=1), _depense(1, "Câble", 20.0, quantite=3)]},
        )
        assert len(tableau.lignes) == 1
        ligne = tableau.lignes[0].par_scenario[1]
        assert ligne.quantite == 4
        assert ligne.total == 70.0
        assert ligne.prix == pytest.approx(17.5)

    def test_archived_lines_are_skipped(self):
        tableau = build_comparison(
            [REF],
            {1: [_depense(1, "Câble", 10.0, archive=True)]},
        )
        assert tableau.lignes == []

    def test_totals_and_total_ecarts(self):
        tableau = build_comparison(
            [REF, ALT],
            {
                1: [_depense(1, "Batterie", 100.0), _depense(1, "Lit", 50.0)],
                2: [_depense(2, "Batterie", 90.0)],
            },
        )
        assert tableau.totaux[1].total_achat == 150.0
        assert tableau.totaux[2].total_achat == 90.0
        assert tableau.ecarts_totaux[2].classement is Classement.FAVORABLE
        assert tableau.ecarts_totaux[2].libelle == "-60.00€"
        assert 1 not in tableau.ecarts_totaux

    def test_scenario_missing_from_mapping_is_empty(self):
        tableau = build_comparison([REF, ALT], {1: [_depense(1, "Batterie", 100.0)]})
        assert tableau.totaux[2].total_achat == 0.0
        assert tableau.lignes[0].par_scenario[2] is None
