"""Totals and energy balance of expense lists, as pure functions.

Only stdlib and domain imports allowed.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal

from domain.energie import EnergyExtractor, HeuristicNameExtractor
from domain.models import BilanEnergie, Depense, Totaux

TENSION_BATTERIE_V = 12
HEURES_ENSOLEILLEMENT = 5

_DEFAULT_EXTRACTOR = HeuristicNameExtractor()


def depenses_actives(depenses):
    """Drop archived expenses, keeping input order."""
    return [d for d in depenses if not d.est_archive]


def weighted_average_price(items):
    """Compute weighted average price from (price, quantity) pairs."""
    items = list(items)
    total_qty = math.fsum(qty for _, qty in items)
    if total_qty == 0:
        return 0.0
    return math.fsum(price * qty for price, qty in items) / total_qty


def arrondi_dixieme(valeur: float) -> float:
    """Round to one decimal, halves away from zero (0.25 -> 0.3)."""
    return float(Decimal(str(valeur)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def compute_totals(depenses: list[Depense]) -> Totaux:
    """Purchase/sale totals and margin of the non-archived expenses.

    ``math.fsum`` is exactly rounded, so the totals do not depend on the
    order of the expenses.
    """
    actives = depenses_actives(depenses)
    total_achat = math.fsum((d.prix or 0) * (d.quantite or 0) for d in actives)
    total_vente = math.fsum(
        (d.prix_vente_ttc or 0) * (d.quantite or 0) for d in actives
    )
    if total_achat == 0:
        marge_pourcent = 0.0
    else:
        marge_pourcent = (total_vente - total_achat) / total_achat * 100
    return Totaux(
        total_achat=total_achat,
        total_vente=total_vente,
        marge_euros=total_vente - total_achat,
        marge_pourcent=marge_pourcent,
        nombre_articles=len(actives),
    )


def compute_energy_balance(
    depenses: list[Depense],
    extractor: EnergyExtractor | None = None,
    tension_v: float = TENSION_BATTERIE_V,
    heures_ensoleillement: float = HEURES_ENSOLEILLEMENT,
) -> BilanEnergie | None:
    """Solar production vs. battery storage of the non-archived expenses.

    Returns None when neither production nor storage was found: callers
    must not render an energy section in that case.
    """
    extractor = extractor or _DEFAULT_EXTRACTOR
    production_w = 0
    stockage_ah = 0
    for depense in depenses_actives(depenses):
        quantite = depense.quantite or 0
        watts = extractor.puissance_w(depense)
        if watts:
            production_w += watts * quantite
        amperes_heure = extractor.capacite_ah(depense)
        if amperes_heure:
            stockage_ah += amperes_heure * quantite

    if production_w == 0 and stockage_ah == 0:
        return None

    stockage_wh = stockage_ah * tension_v
    autonomie = None
    if production_w > 0 and stockage_wh > 0:
        autonomie = arrondi_dixieme(stockage_wh / (production_w * heures_ensoleillement))
    return BilanEnergie(
        production_w=production_w,
        stockage_ah=stockage_ah,
        stockage_wh=stockage_wh,
        autonomie_jours=autonomie,
    )


def categories_distinctes(depenses: list[Depense]) -> list[str]:
    """Distinct non-empty categories of the active expenses, first-seen order."""
    vues: dict[str, None] = {}
    for depense in depenses_actives(depenses):
        if depense.categorie:
            vues.setdefault(depense.categorie, None)
    return list(vues)
