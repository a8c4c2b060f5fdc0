from datetime import datetime, timezone
from sqlalchemy import (
    JSON, Boolean, Column, Integer, String, Float, Date, DateTime, Text, ForeignKey, Index,
)
from sqlalchemy.orm import DeclarativeBase, relationship


def _now():
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Projet(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True)
    nom = Column(String, nullable=False)
    nom_proprietaire = Column(String)
    marque_vehicule = Column(String)
    modele_vehicule = Column(String)
    statut_financier = Column(String, nullable=False, default="brouillon")
    date_validation_devis = Column(DateTime)
    date_encaissement_acompte = Column(DateTime)
    montant_acompte = Column(Float)
    created_at = Column(DateTime, default=_now)

    scenarios = relationship("Scenario", back_populates="projet", cascade="all, delete-orphan")


class Scenario(Base):
    __tablename__ = "project_scenarios"

    id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    nom = Column(String, nullable=False)
    couleur = Column(String, default="#3B82F6")
    icone = Column(String, default="📋")
    est_principal = Column(Boolean, nullable=False, default=False)
    is_locked = Column(Boolean, nullable=False, default=False)
    ordre = Column(Integer, default=0)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=_now)
    updated_at = Column(DateTime, default=_now, onupdate=_now)

    projet = relationship("Projet", back_populates="scenarios")
    depenses = relationship("Depense", back_populates="scenario")

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        Index("idx_scenarios_project", "project_id", "ordre"),
    )


class Depense(Base):
    __tablename__ = "project_expenses"

    id = Column(Integer, primary_key=True)
    scenario_id = Column(Integer, ForeignKey("project_scenarios.id"), nullable=False)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    nom_accessoire = Column(Text, nullable=False)
    categorie = Column(String)
    prix = Column(Float, default=0.0)
    quantite = Column(Float, default=1)
    prix_vente_ttc = Column(Float)
    fournisseur = Column(String)
    marque = Column(String)
    notes = Column(Text)
    est_archive = Column(Boolean, default=False)
    statut_livraison = Column(String)  # "commande", "en_livraison", "livre" or NULL
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=_now)
    updated_at = Column(DateTime, default=_now, onupdate=_now)

    scenario = relationship("Scenario", back_populates="depenses")

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        Index("idx_expenses_scenario", "scenario_id"),
        Index("idx_expenses_project", "project_id"),
    )


class DevisSnapshot(Base):
    __tablename__ = "devis_snapshots"

    id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    scenario_id = Column(Integer, ForeignKey("project_scenarios.id"))
    version_numero = Column(Integer, nullable=False)
    nom_snapshot = Column(String, nullable=False)
    contenu_complet = Column(JSON, nullable=False)
    notes = Column(Text)
    created_at = Column(DateTime, default=_now)

    __table_args__ = (
        Index("idx_snapshots_project", "project_id", "version_numero"),
    )


class HistoriqueDepense(Base):
    __tablename__ = "project_expenses_history"

    id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    scenario_id = Column(Integer, ForeignKey("project_scenarios.id"))
    expense_id = Column(Integer)  # no FK: the expense may be deleted afterwards
    action = Column(String, nullable=False)  # "ajout", "modification", "suppression", "remplacement"
    ancienne_depense_json = Column(JSON)
    raison_changement = Column(Text)
    remplace_par_id = Column(Integer)
    modifie_par_user_id = Column(String)
    date_modification = Column(DateTime, default=_now)

    __table_args__ = (
        Index("idx_history_project", "project_id", "date_modification"),
    )


class Paiement(Base):
    __tablename__ = "project_payment_transactions"

    id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    user_id = Column(String)
    type_paiement = Column(String, nullable=False)  # "acompte", "solde", ...
    montant = Column(Float, nullable=False)
    date_paiement = Column(Date)
    notes = Column(Text)
    created_at = Column(DateTime, default=_now)

    __table_args__ = (
        Index("idx_payments_project", "project_id"),
    )
