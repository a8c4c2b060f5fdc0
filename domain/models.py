"""Domain models: pure Python, zero external dependencies.

Only stdlib imports allowed: dataclasses, datetime, enum.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from enum import Enum


class StatutFinancier(Enum):
    """Financial status of a project."""

    BROUILLON = "brouillon"
    DEVIS_ACCEPTE = "devis_accepte"
    EN_COURS = "en_cours"
    TERMINE = "termine"


class StatutLivraison(Enum):
    """Delivery status of an expense line (shopping list)."""

    COMMANDE = "commande"
    EN_LIVRAISON = "en_livraison"
    LIVRE = "livre"


class ActionHistorique(Enum):
    """Kind of mutation recorded in the expense history."""

    AJOUT = "ajout"
    MODIFICATION = "modification"
    SUPPRESSION = "suppression"
    REMPLACEMENT = "remplacement"


class Classement(Enum):
    """Position of a value relative to the reference scenario."""

    FAVORABLE = "favorable"
    DEFAVORABLE = "unfavorable"
    NEUTRE = "neutral"


# ── Entities ────────────────────────────────────────────────────────────


@dataclass
class Scenario:
    """A named cost-configuration variant of a project's expense list."""

    project_id: int
    nom: str
    icone: str = "📋"
    couleur: str = "#3B82F6"
    est_principal: bool = False
    is_locked: bool = False
    ordre: int = 0
    version: int = 1
    id: int | None = None


@dataclass
class Depense:
    """An expense line owned by exactly one scenario."""

    scenario_id: int
    project_id: int
    nom_accessoire: str
    categorie: str | None = None
    prix: float = 0.0
    quantite: float = 1
    prix_vente_ttc: float | None = None
    fournisseur: str | None = None
    marque: str | None = None
    notes: str | None = None
    est_archive: bool = False
    statut_livraison: StatutLivraison | None = None
    version: int = 1
    id: int | None = None

    def to_dict(self) -> dict:
        """Plain JSON-compatible representation, used by snapshots and history."""
        data = asdict(self)
        data["statut_livraison"] = (
            self.statut_livraison.value if self.statut_livraison else None
        )
        return data


@dataclass(frozen=True)
class EtatFinancier:
    """Financial state of a project (quote validation and deposit)."""

    statut_financier: StatutFinancier = StatutFinancier.BROUILLON
    date_validation_devis: datetime | None = None
    date_encaissement_acompte: datetime | None = None
    montant_acompte: float | None = None


@dataclass
class Projet:
    """A van-conversion project, reduced to what the quote engine needs."""

    nom: str
    nom_proprietaire: str | None = None
    marque_vehicule: str | None = None
    modele_vehicule: str | None = None
    etat: EtatFinancier = field(default_factory=EtatFinancier)
    id: int | None = None

    @property
    def vehicule(self) -> str:
        return " ".join(p for p in (self.marque_vehicule, self.modele_vehicule) if p)

    def metadata(self) -> dict:
        """Project metadata embedded in a quote snapshot."""
        return {
            "id": self.id,
            "nom": self.nom,
            "nom_proprietaire": self.nom_proprietaire,
            "vehicule": self.vehicule,
            "marque_vehicule": self.marque_vehicule,
            "modele_vehicule": self.modele_vehicule,
        }


@dataclass(frozen=True)
class DevisSnapshot:
    """Immutable copy of a scenario's financial state at lock time."""

    project_id: int
    scenario_id: int
    version_numero: int
    nom_snapshot: str
    contenu_complet: dict
    notes: str | None = None
    created_at: datetime | None = None
    id: int | None = None


@dataclass(frozen=True)
class HistoriqueDepense:
    """Audit-log record of a mutation applied to a locked scenario's expense."""

    project_id: int
    scenario_id: int
    action: ActionHistorique
    ancienne_depense_json: dict | None
    expense_id: int | None = None
    raison_changement: str | None = None
    remplace_par_id: int | None = None
    modifie_par_user_id: str | None = None
    date_modification: datetime | None = None
    id: int | None = None


@dataclass(frozen=True)
class Paiement:
    """A payment transaction recorded against a project."""

    project_id: int
    montant: float
    type_paiement: str = "acompte"
    user_id: str | None = None
    date_paiement: date | None = None
    notes: str | None = None
    id: int | None = None


# ── Result Value Objects ────────────────────────────────────────────────


@dataclass(frozen=True)
class Totaux:
    """Aggregates of a scenario's active expenses."""

    total_achat: float = 0.0
    total_vente: float = 0.0
    marge_euros: float = 0.0
    marge_pourcent: float = 0.0
    nombre_articles: int = 0


@dataclass(frozen=True)
class BilanEnergie:
    """Solar production vs. battery storage estimate."""

    production_w: float
    stockage_ah: float
    stockage_wh: float
    autonomie_jours: float | None = None


@dataclass(frozen=True)
class LigneScenario:
    """One scenario's figures for a comparison row."""

    prix: float
    quantite: float
    total: float
    marque: str | None = None
    details: str | None = None


@dataclass(frozen=True)
class Ecart:
    """Difference between a scenario's value and the reference value."""

    delta: float
    classement: Classement
    libelle: str | None = None


@dataclass
class LigneComparaison:
    """A comparison row: one item key across every scenario."""

    cle: str
    nom: str
    categorie: str
    par_scenario: dict[int, LigneScenario | None] = field(default_factory=dict)
    ecarts: dict[int, Ecart | None] = field(default_factory=dict)


@dataclass
class GroupeCategorie:
    """Rows of one category, in first-appearance order."""

    categorie: str
    lignes: list[LigneComparaison] = field(default_factory=list)


@dataclass
class TableauComparatif:
    """Cross-scenario diff table."""

    scenarios: list[Scenario]
    reference_id: int | None
    groupes: list[GroupeCategorie] = field(default_factory=list)
    totaux: dict[int, Totaux] = field(default_factory=dict)
    ecarts_totaux: dict[int, Ecart | None] = field(default_factory=dict)

    @property
    def lignes(self) -> list[LigneComparaison]:
        return [ligne for groupe in self.groupes for ligne in groupe.lignes]


@dataclass(frozen=True)
class DemandeVerrouillage:
    """Lock request: freeze the principal scenario's quote."""

    scenario_id: int
    montant_acompte: float | None
    notes: str | None = None


@dataclass(frozen=True)
class ResultatVerrouillage:
    """Outcome of a successful lock."""

    snapshot: DevisSnapshot
    paiement: Paiement
    etat: EtatFinancier
    nombre_depenses_commandees: int
