"""Cross-scenario comparison: pure functions, zero external dependencies.

Builds a line-by-line diff table of several scenarios against the principal
(reference) scenario.
"""

from __future__ import annotations

from domain.analytics.aggregation import (
    compute_totals,
    depenses_actives,
    weighted_average_price,
)
from domain.models import (
    Classement,
    Depense,
    Ecart,
    GroupeCategorie,
    LigneComparaison,
    LigneScenario,
    Scenario,
    TableauComparatif,
)

CATEGORIE_PAR_DEFAUT = "Autre"


def cle_article(depense: Depense) -> str:
    """Composite comparison key: categorie + "_" + nom_accessoire."""
    return f"{depense.categorie or CATEGORIE_PAR_DEFAUT}_{depense.nom_accessoire}"


def comparer(valeur: float, reference: float) -> Ecart:
    """Classify ``valeur`` against ``reference`` (lower is favorable).

    Values equal to the cent are neutral and carry no label.
    """
    delta = round(valeur - reference, 2)
    if delta < 0:
        return Ecart(delta=delta, classement=Classement.FAVORABLE, libelle=f"{delta:.2f}€")
    if delta > 0:
        return Ecart(delta=delta, classement=Classement.DEFAVORABLE, libelle=f"+{delta:.2f}€")
    return Ecart(delta=0.0, classement=Classement.NEUTRE, libelle=None)


def _fusionner(lignes: list[Depense]) -> LigneScenario:
    """Collapse the lines of one scenario sharing the same key."""
    premiere = lignes[0]
    if len(lignes) == 1:
        return LigneScenario(
            prix=premiere.prix or 0,
            quantite=premiere.quantite or 0,
            total=(premiere.prix or 0) * (premiere.quantite or 0),
            marque=premiere.marque,
            details=premiere.notes,
        )
    paires = [(d.prix or 0, d.quantite or 0) for d in lignes]
    quantite = sum(qty for _, qty in paires)
    return LigneScenario(
        prix=weighted_average_price(paires),
        quantite=quantite,
        total=sum(prix * qty for prix, qty in paires),
        marque=premiere.marque,
        details=premiere.notes,
    )


def _reference(scenarios: list[Scenario]) -> Scenario | None:
    return next((s for s in scenarios if s.est_principal), None)


def build_comparison(
    scenarios: list[Scenario],
    depenses_par_scenario: dict[int, list[Depense]],
) -> TableauComparatif:
    """Build the comparison table.

    Args:
        scenarios: Columns of the table, in display order.
        depenses_par_scenario: scenario id -> expenses (archived lines are
            ignored). A scenario missing from the mapping has no expenses.

    Rows are grouped by category; categories and rows follow the order in
    which keys first appear when walking the scenarios, then their expenses,
    in input order. A scenario without a given key gets ``None`` for that row.
    Without a principal scenario every Ecart is ``None``.
    """
    reference = _reference(scenarios)
    reference_id = reference.id if reference else None

    # key -> scenario id -> lines
    collecte: dict[str, dict[int, list[Depense]]] = {}
    meta: dict[str, tuple[str, str]] = {}
    for scenario in scenarios:
        for depense in depenses_actives(depenses_par_scenario.get(scenario.id, [])):
            cle = cle_article(depense)
            if cle not in collecte:
                collecte[cle] = {}
                meta[cle] = (
                    depense.nom_accessoire,
                    depense.categorie or CATEGORIE_PAR_DEFAUT,
                )
            collecte[cle].setdefault(scenario.id, []).append(depense)

    groupes: dict[str, GroupeCategorie] = {}
    for cle, par_scenario in collecte.items():
        nom, categorie = meta[cle]
        ligne = LigneComparaison(cle=cle, nom=nom, categorie=categorie)
        for scenario in scenarios:
            lignes = par_scenario.get(scenario.id)
            ligne.par_scenario[scenario.id] = _fusionner(lignes) if lignes else None

        ref_data = ligne.par_scenario.get(reference_id) if reference else None
        for scenario in scenarios:
            if scenario.id == reference_id:
                continue
            data = ligne.par_scenario[scenario.id]
            if data is None or ref_data is None:
                ligne.ecarts[scenario.id] = None
            else:
                ligne.ecarts[scenario.id] = comparer(data.total, ref_data.total)

        groupes.setdefault(categorie, GroupeCategorie(categorie=categorie)).lignes.append(ligne)

    totaux = {
        s.id: compute_totals(depenses_par_scenario.get(s.id, [])) for s in scenarios
    }
    ecarts_totaux = {}
    for scenario in scenarios:
        if scenario.id == reference_id:
            continue
        ecarts_totaux[scenario.id] = (
            comparer(totaux[scenario.id].total_achat, totaux[reference_id].total_achat)
            if reference is not None
            else None
        )

    return TableauComparatif(
        scenarios=list(scenarios),
        reference_id=reference_id,
        groupes=list(groupes.values()),
        totaux=totaux,
        ecarts_totaux=ecarts_totaux,
    )
