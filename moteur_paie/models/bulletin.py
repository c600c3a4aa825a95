"""Modeles de donnees du bulletin de paie."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional, Union

from moteur_paie.config.constants import CategorieCotisation, TypeAssiette
from moteur_paie.utils.number_utils import arrondir, to_decimal


def _montant(valeur: Decimal) -> str:
    return str(arrondir(valeur))


def _date(valeur: Optional[date]) -> Optional[str]:
    return valeur.isoformat() if valeur else None


# --- Cotisations ---

@dataclass
class DefinitionCotisation:
    """Definition d'une cotisation sociale (taux en pourcentage)."""
    id: str
    nom: str
    categorie: CategorieCotisation = CategorieCotisation.AUTRES
    taux_salarial: Decimal = Decimal("0")
    taux_patronal: Decimal = Decimal("0")
    # Une valeur hors TypeAssiette donne une assiette nulle au calcul
    type_assiette: Union[TypeAssiette, str] = TypeAssiette.TOTAL
    obligatoire: bool = True
    description: str = ""

    def copie(self) -> DefinitionCotisation:
        return copy.copy(self)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "nom": self.nom,
            "categorie": getattr(self.categorie, "value", self.categorie),
            "taux_salarial": str(self.taux_salarial),
            "taux_patronal": str(self.taux_patronal),
            "type_assiette": getattr(self.type_assiette, "value", self.type_assiette),
            "obligatoire": self.obligatoire,
            "description": self.description,
        }


@dataclass(frozen=True)
class MontantsCotisation:
    montant_salarial: Decimal
    montant_patronal: Decimal


@dataclass(frozen=True)
class DetailCotisation:
    """Ligne de calcul d'une cotisation, pour affichage et audit."""
    id: str
    nom: str
    categorie: Union[CategorieCotisation, str]
    assiette: Decimal
    taux_salarial: Decimal
    taux_patronal: Decimal
    montant_salarial: Decimal
    montant_patronal: Decimal

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "nom": self.nom,
            "categorie": getattr(self.categorie, "value", self.categorie),
            "assiette": _montant(self.assiette),
            "taux_salarial": str(self.taux_salarial),
            "taux_patronal": str(self.taux_patronal),
            "montant_salarial": _montant(self.montant_salarial),
            "montant_patronal": _montant(self.montant_patronal),
        }


@dataclass
class TotauxCotisations:
    total_salarial: Decimal = Decimal("0")
    total_patronal: Decimal = Decimal("0")
    details: list[DetailCotisation] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_salarial": _montant(self.total_salarial),
            "total_patronal": _montant(self.total_patronal),
            "details": [d.to_dict() for d in self.details],
        }


# --- Elements de salaire ---

@dataclass
class LigneSalaire:
    """Element du brut (salaire de base, heures sup, prime) ou retenue."""
    libelle: str
    montant: Optional[Decimal] = None
    base: Optional[Decimal] = None     # ex : nombre d'heures
    taux: Optional[Decimal] = None     # ex : taux horaire
    est_gain: bool = True
    desactivee: bool = False

    @property
    def montant_calcule(self) -> Optional[Decimal]:
        """base x taux, si les deux sont renseignes."""
        if self.base is None or self.taux is None:
            return None
        return to_decimal(self.base) * to_decimal(self.taux)

    def to_dict(self) -> dict:
        return {
            "libelle": self.libelle,
            "base": str(self.base) if self.base is not None else None,
            "taux": str(self.taux) if self.taux is not None else None,
            "montant": _montant(to_decimal(self.montant)),
            "est_gain": self.est_gain,
            "desactivee": self.desactivee,
        }


# --- Nets, cumuls, conges ---

@dataclass(frozen=True)
class NetsSalaire:
    """Nets du bulletin.

    net_imposable reintegre la CSG non deductible et la CRDS ; le
    prelevement a la source (taux_pas, en pourcentage) s'applique sur
    net_imposable et ne diminue que net_a_payer.
    """
    net_avant_impot: Decimal
    net_a_payer: Decimal
    net_social: Decimal
    net_imposable: Decimal = Decimal("0")
    taux_pas: Decimal = Decimal("0")
    montant_pas: Decimal = Decimal("0")

    def to_dict(self) -> dict:
        return {
            "net_avant_impot": _montant(self.net_avant_impot),
            "net_imposable": _montant(self.net_imposable),
            "taux_pas": str(self.taux_pas),
            "montant_pas": _montant(self.montant_pas),
            "net_a_payer": _montant(self.net_a_payer),
            "net_social": _montant(self.net_social),
        }


@dataclass(frozen=True)
class Cumuls:
    """Cumuls depuis le debut de l'annee fiscale."""
    cumul_brut: Decimal
    cumul_net: Decimal
    debut: Optional[date] = None
    fin: Optional[date] = None

    def to_dict(self) -> dict:
        return {
            "cumul_brut": _montant(self.cumul_brut),
            "cumul_net": _montant(self.cumul_net),
            "debut": _date(self.debut),
            "fin": _date(self.fin),
        }


@dataclass(frozen=True)
class CongesPayes:
    acquis: Decimal = Decimal("0")
    pris: Decimal = Decimal("0")
    restants: Decimal = Decimal("0")

    def to_dict(self) -> dict:
        return {
            "acquis": str(self.acquis),
            "pris": str(self.pris),
            "restants": str(self.restants),
        }
