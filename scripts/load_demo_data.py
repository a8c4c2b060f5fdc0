#!/usr/bin/env python3
"""Load a demo van-conversion project with two scenarios.

Usage:
    PYTHONPATH=. python scripts/load_demo_data.py [--lock] [--export DIR]

Creates a project with a "Standard" (principal) and a "Premium" scenario;
with --lock the principal quote is locked with a 1500 € deposit. The scenario
totals are printed; --export writes the comparison tables as CSV files.
"""
import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from devis.analytics.export import exporter_projet, totaux_dataframe
from devis.app import bootstrap
from domain.models import Depense, Projet

ARTICLES_STANDARD = [
    ("Électrique", "Panneau solaire 150W", 180.0, 2, 260.0, "Victron"),
    ("Électrique", "Batterie lithium 100Ah", 650.0, 1, 890.0, "Victron"),
    ("Isolation", "Laine de mouton 10m²", 95.0, 3, 140.0, None),
    ("Mobilier", "Lit fixe pin massif", 420.0, 1, 600.0, None),
]

ARTICLES_PREMIUM = [
    ("Électrique", "Panneau solaire 200W", 240.0, 2, 340.0, "Victron"),
    ("Électrique", "Batterie lithium 200Ah", 1150.0, 1, 1590.0, "Victron"),
    ("Isolation", "Laine de mouton 10m²", 95.0, 3, 140.0, None),
    ("Mobilier", "Lit relevable", 780.0, 1, 1090.0, None),
]


def _remplir(services, scenario, articles):
    for categorie, nom, prix, quantite, vente, marque in articles:
        services.audit.ajouter_depense(
            Depense(
                scenario_id=scenario.id,
                project_id=scenario.project_id,
                nom_accessoire=nom,
                categorie=categorie,
                prix=prix,
                quantite=quantite,
                prix_vente_ttc=vente,
                marque=marque,
            )
        )


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--lock", action="store_true", help="lock the principal quote")
    parser.add_argument("--export", metavar="DIR", help="write the tables as CSV into DIR")
    args = parser.parse_args()

    session, services = bootstrap(user_id="demo")
    try:
        projet = services.projets.save(
            Projet(
                nom="Aménagement Trafic L2H1",
                nom_proprietaire="Camille Martin",
                marque_vehicule="Renault",
                modele_vehicule="Trafic",
            )
        )
        session.commit()

        standard = services.scenarios.create_scenario(projet.id, "Standard")
        _remplir(services, standard, ARTICLES_STANDARD)
        premium = services.scenarios.create_scenario(
            projet.id, "Premium", couleur="#F59E0B", icone="⭐"
        )
        _remplir(services, premium, ARTICLES_PREMIUM)

        if args.lock:
            resultat = services.verrou.verrouiller_projet(projet.id, 1500.0)
            print(f"Devis v{resultat.snapshot.version_numero} verrouillé")

        tableau = services.lecture.comparaison(projet.id)
        print(totaux_dataframe(tableau).to_string(index=False))

        if args.export:
            chemins = exporter_projet(services.lecture, projet.id, args.export)
            print(f"{len(chemins)} fichiers CSV écrits dans {args.export}")
    finally:
        session.close()

    print(f"Projet de démonstration {projet.id} créé.")


if __name__ == "__main__":
    main()
