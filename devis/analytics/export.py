"""Tabular exports of the quote read models.

This module uses pandas DataFrames so the tables can be rendered or written
to CSV as-is.
"""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path

import pandas as pd

from domain.lecture import LectureDevisService
from domain.models import DevisSnapshot, HistoriqueDepense, Scenario, TableauComparatif

logger = logging.getLogger(__name__)


def libelles_scenarios(scenarios: list[Scenario]) -> dict[int, str]:
    """Column label per scenario id; names shared by several scenarios get ``#id``."""
    occurrences = Counter(s.nom for s in scenarios)
    return {
        s.id: s.nom if occurrences[s.nom] == 1 else f"{s.nom} #{s.id}"
        for s in scenarios
    }


def comparaison_dataframe(tableau: TableauComparatif) -> pd.DataFrame:
    """One row per comparison line, one column group per scenario.

    Columns: ``categorie``, ``article``, then for each scenario
    ``<libelle> total`` and, for non-reference scenarios, ``<libelle> écart``.
    Missing lines are NaN / empty.
    """
    libelles = libelles_scenarios(tableau.scenarios)
    rows = []
    for ligne in tableau.lignes:
        row = {"categorie": ligne.categorie, "article": ligne.nom}
        for scenario in tableau.scenarios:
            libelle = libelles[scenario.id]
            data = ligne.par_scenario.get(scenario.id)
            row[f"{libelle} total"] = data.total if data else None
            if scenario.id in ligne.ecarts:
                ecart = ligne.ecarts[scenario.id]
                row[f"{libelle} écart"] = ecart.libelle if ecart else None
        rows.append(row)

    columns = ["categorie", "article"]
    for scenario in tableau.scenarios:
        columns.append(f"{libelles[scenario.id]} total")
        if tableau.reference_id is not None and scenario.id != tableau.reference_id:
            columns.append(f"{libelles[scenario.id]} écart")
    return pd.DataFrame(rows, columns=columns)


def totaux_dataframe(tableau: TableauComparatif) -> pd.DataFrame:
    """Totals of each scenario, reference first flagged with ``principal``."""
    libelles = libelles_scenarios(tableau.scenarios)
    rows = []
    for scenario in tableau.scenarios:
        totaux = tableau.totaux[scenario.id]
        ecart = tableau.ecarts_totaux.get(scenario.id)
        rows.append({
            "scenario": libelles[scenario.id],
            "principal": scenario.id == tableau.reference_id,
            "total_achat": round(totaux.total_achat, 2),
            "total_vente": round(totaux.total_vente, 2),
            "marge_euros": round(totaux.marge_euros, 2),
            "marge_pourcent": round(totaux.marge_pourcent, 1),
            "nombre_articles": totaux.nombre_articles,
            "ecart": ecart.libelle if ecart else None,
        })
    return pd.DataFrame(rows, columns=[
        "scenario", "principal", "total_achat", "total_vente",
        "marge_euros", "marge_pourcent", "nombre_articles", "ecart",
    ])


def historique_dataframe(entrees: list[HistoriqueDepense]) -> pd.DataFrame:
    """Audit trail, in the order given (newest first from the repository)."""
    rows = []
    for entree in entrees:
        ancienne = entree.ancienne_depense_json or {}
        rows.append({
            "date": entree.date_modification,
            "action": entree.action.value,
            "article": ancienne.get("nom_accessoire"),
            "prix": ancienne.get("prix"),
            "quantite": ancienne.get("quantite"),
            "raison": entree.raison_changement,
            "utilisateur": entree.modifie_par_user_id,
        })
    return pd.DataFrame(rows, columns=[
        "date", "action", "article", "prix", "quantite", "raison", "utilisateur",
    ])


def snapshots_dataframe(snapshots: list[DevisSnapshot]) -> pd.DataFrame:
    rows = [
        {
            "version": s.version_numero,
            "nom": s.nom_snapshot,
            "date": s.created_at,
            "total_achat_ht": s.contenu_complet.get("totaux", {}).get("total_achat_ht"),
            "total_vente_ttc": s.contenu_complet.get("totaux", {}).get("total_vente_ttc"),
            "montant_acompte": s.contenu_complet.get("metadata", {}).get("montant_acompte"),
        }
        for s in snapshots
    ]
    return pd.DataFrame(rows, columns=[
        "version", "nom", "date", "total_achat_ht", "total_vente_ttc", "montant_acompte",
    ])


def export_csv(df: pd.DataFrame, path=None) -> str | None:
    """Write *df* to *path*; return the CSV text when no path is given."""
    if path is None:
        return df.to_csv(index=False)
    df.to_csv(path, index=False, encoding="utf-8")
    return None


def exporter_projet(lecture: LectureDevisService, project_id: int, dossier) -> list[Path]:
    """Write the comparison, totals, history and snapshot tables of a project as CSV."""
    dossier = Path(dossier)
    dossier.mkdir(parents=True, exist_ok=True)
    tableau = lecture.comparaison(project_id)
    tables = {
        "comparaison.csv": comparaison_dataframe(tableau),
        "totaux.csv": totaux_dataframe(tableau),
        "historique.csv": historique_dataframe(lecture.historique(project_id)),
        "snapshots.csv": snapshots_dataframe(lecture.snapshots(project_id)),
    }
    chemins = []
    for nom, df in tables.items():
        export_csv(df, dossier / nom)
        chemins.append(dossier / nom)
    logger.info("Projet %s exporté dans %s (%d fichiers)", project_id, dossier, len(chemins))
    return chemins
