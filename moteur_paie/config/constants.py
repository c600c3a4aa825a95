"""
Constantes reglementaires de paie.

Sources officielles :
- urssaf.fr : Plafond de la securite sociale (PMSS) par annee
- agirc-arrco.fr : Tranches 1 et 2 de la retraite complementaire
- service-public.fr : Acquisition des conges payes
"""

from decimal import Decimal
from enum import Enum


# --- Plafond mensuel de la securite sociale (PMSS) ---

ANNEE_REFERENCE = 2024

PLAFONDS_SS_MENSUELS = {
    2023: Decimal("3666"),
    2024: Decimal("3864"),
    2025: Decimal("3925"),
    2026: Decimal("4005"),
}

PLAFOND_SS_MENSUEL = PLAFONDS_SS_MENSUELS[ANNEE_REFERENCE]

# Tranche 2 AGIRC-ARRCO : de 1 a 8 plafonds
MULTIPLE_PLAFOND_TRANCHE_B = Decimal("8")


class CategorieCotisation(str, Enum):
    """Categories de cotisations sociales."""
    SECURITE_SOCIALE = "social_security"
    RETRAITE = "retirement"
    CHOMAGE = "unemployment"
    CSG_CRDS = "csg_crds"
    AUTRES = "other"


class TypeAssiette(str, Enum):
    """Part du salaire brut sur laquelle s'applique le taux."""
    TOTAL = "total"
    PLAFONNEE = "capped"
    TRANCHE_A = "tier_a"
    TRANCHE_B = "tier_b"


LIBELLES_CATEGORIES = {
    CategorieCotisation.SECURITE_SOCIALE: "Securite Sociale",
    CategorieCotisation.RETRAITE: "Retraite",
    CategorieCotisation.CHOMAGE: "Chomage",
    CategorieCotisation.CSG_CRDS: "CSG / CRDS",
    CategorieCotisation.AUTRES: "Autres cotisations",
}

# Libelles historiques acceptes au chargement d'un catalogue
ALIAS_CATEGORIES = {
    "securite_sociale": CategorieCotisation.SECURITE_SOCIALE,
    "retraite": CategorieCotisation.RETRAITE,
    "chomage": CategorieCotisation.CHOMAGE,
    "autres": CategorieCotisation.AUTRES,
}

ALIAS_ASSIETTES = {
    "plafond": TypeAssiette.PLAFONNEE,
    "trancheA": TypeAssiette.TRANCHE_A,
    "trancheB": TypeAssiette.TRANCHE_B,
}

# Cotisations reservees aux cadres (APEC, tranche 2 AGIRC-ARRCO et CEG)
COTISATIONS_CADRE = frozenset({"apec", "cev_t2", "agirc_arrco_t2"})

# Part salariale reintegree au net imposable
COTISATIONS_NON_DEDUCTIBLES = frozenset({"csg_non_deductible", "crds"})


# --- Temps partiel ---

DUREE_LEGALE_HEBDO = Decimal("35")


# --- Conges payes ---

CONGES_ACQUIS_PAR_MOIS = Decimal("2.5")
MOIS_DEBUT_PERIODE_CONGES = 6  # 1er juin


# Arrondi d'affichage : au centime
QUANTUM_CENTIME = Decimal("0.01")

FORMATS_EXPORT = ("json", "csv", "xlsx")
