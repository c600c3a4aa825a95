"""Catalogue des cotisations sociales francaises.

Taux en vigueur en 2024 (regime general). Le catalogue par defaut est un
modele immuable : chaque appel a `get_cotisations_defaut` en retourne une
copie, que le bulletin peut modifier librement (taux, activation).

Un catalogue externe (JSON) est valide a son chargement : les entrees mal
formees sont signalees une fois et ecartees, le calculateur ne recoit que
des definitions valides.
"""

import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from moteur_paie.config.constants import (
    ALIAS_ASSIETTES,
    ALIAS_CATEGORIES,
    CategorieCotisation,
    TypeAssiette,
)
from moteur_paie.core.exceptions import CatalogueError
from moteur_paie.models.bulletin import DefinitionCotisation

logger = logging.getLogger("moteur_paie.catalogue")

SS = CategorieCotisation.SECURITE_SOCIALE
RETRAITE = CategorieCotisation.RETRAITE
CHOMAGE = CategorieCotisation.CHOMAGE
CSG_CRDS = CategorieCotisation.CSG_CRDS
AUTRES = CategorieCotisation.AUTRES


def _def(id, nom, categorie, salarial, patronal, assiette, obligatoire, description):
    return DefinitionCotisation(
        id=id,
        nom=nom,
        categorie=categorie,
        taux_salarial=Decimal(salarial),
        taux_patronal=Decimal(patronal),
        type_assiette=assiette,
        obligatoire=obligatoire,
        description=description,
    )


_CATALOGUE_DEFAUT: tuple[DefinitionCotisation, ...] = (
    # SECURITE SOCIALE
    _def("maladie", "Assurance Maladie", SS, "0", "7.3", TypeAssiette.TOTAL, True,
         "Financement de l'assurance maladie"),
    _def("maladie_alsace_moselle", "Assurance Maladie - Regime local Alsace-Moselle", SS,
         "1.5", "0", TypeAssiette.TOTAL, False,
         "Supplement pour le regime local d'Alsace-Moselle"),
    _def("vieillesse_plafonnee", "Assurance Vieillesse plafonnee", SS, "6.9", "8.55",
         TypeAssiette.PLAFONNEE, True,
         "Cotisation retraite jusqu'au plafond de la securite sociale"),
    _def("vieillesse_total", "Assurance Vieillesse deplafonnee", SS, "0.4", "1.9",
         TypeAssiette.TOTAL, True, "Cotisation retraite sur la totalite du salaire"),
    _def("allocations_familiales", "Allocations Familiales", SS, "0", "5.25",
         TypeAssiette.TOTAL, True, "Financement des prestations familiales"),
    _def("accidents_travail", "Accidents du Travail", SS, "0", "1.4", TypeAssiette.TOTAL, True,
         "Taux variable selon l'activite et l'entreprise (1,4% par defaut)"),

    # RETRAITE COMPLEMENTAIRE
    _def("agirc_arrco_t1", "Retraite complementaire AGIRC-ARRCO Tranche 1", RETRAITE,
         "3.15", "4.72", TypeAssiette.PLAFONNEE, True,
         "Retraite complementaire jusqu'au plafond de la securite sociale"),
    _def("agirc_arrco_t2", "Retraite complementaire AGIRC-ARRCO Tranche 2", RETRAITE,
         "8.64", "12.95", TypeAssiette.TRANCHE_B, True,
         "Retraite complementaire entre 1 et 8 fois le plafond de la securite sociale"),
    _def("cev", "Contribution d'equilibre general (CEG) Tranche 1", RETRAITE,
         "0.86", "1.29", TypeAssiette.PLAFONNEE, True,
         "Equilibre du regime de retraite complementaire jusqu'au plafond"),
    _def("cev_t2", "Contribution d'equilibre general (CEG) Tranche 2", RETRAITE,
         "1.08", "1.62", TypeAssiette.TRANCHE_B, True,
         "Equilibre du regime de retraite complementaire entre 1 et 8 fois le plafond"),
    _def("apec", "APEC", RETRAITE, "0.024", "0.036", TypeAssiette.PLAFONNEE, False,
         "Pour les cadres uniquement"),

    # CHOMAGE
    _def("assurance_chomage", "Assurance Chomage", CHOMAGE, "0", "4.05",
         TypeAssiette.PLAFONNEE, True, "Financement de l'assurance chomage"),
    _def("ags", "AGS (Garantie des salaires)", CHOMAGE, "0", "0.15",
         TypeAssiette.PLAFONNEE, True,
         "Garantie des salaires en cas de redressement ou liquidation judiciaire"),

    # CSG / CRDS
    _def("csg_deductible", "CSG deductible", CSG_CRDS, "6.8", "0", TypeAssiette.TOTAL, True,
         "Contribution sociale generalisee deductible du revenu imposable"),
    _def("csg_non_deductible", "CSG non deductible", CSG_CRDS, "2.4", "0",
         TypeAssiette.TOTAL, True,
         "Contribution sociale generalisee non deductible du revenu imposable"),
    _def("crds", "CRDS", CSG_CRDS, "0.5", "0", TypeAssiette.TOTAL, True,
         "Contribution au remboursement de la dette sociale"),

    # AUTRES
    _def("fnal", "FNAL", AUTRES, "0", "0.1", TypeAssiette.PLAFONNEE, True,
         "Fonds national d'aide au logement"),
    _def("formation_professionnelle", "Formation professionnelle", AUTRES, "0", "1.0",
         TypeAssiette.TOTAL, True, "Contribution a la formation professionnelle"),
    _def("versement_transport", "Versement mobilite", AUTRES, "0", "2.0",
         TypeAssiette.TOTAL, False,
         "Taux variable selon la localite (2% par defaut pour les grandes agglomerations)"),
    _def("forfait_social", "Forfait social", AUTRES, "0", "20.0", TypeAssiette.TOTAL, False,
         "Applicable sur certaines contributions patronales (epargne salariale, etc.)"),
)


def get_cotisations_defaut() -> list[DefinitionCotisation]:
    """Retourne une copie du catalogue par defaut, dans l'ordre reglementaire."""
    return [d.copie() for d in _CATALOGUE_DEFAUT]


def get_par_categorie(categorie: Union[CategorieCotisation, str]) -> list[DefinitionCotisation]:
    """Cotisations par defaut d'une categorie. Categorie inconnue : liste vide."""
    try:
        categorie = CategorieCotisation(categorie)
    except ValueError:
        categorie = ALIAS_CATEGORIES.get(categorie)
        if categorie is None:
            return []
    return [d.copie() for d in _CATALOGUE_DEFAUT if d.categorie == categorie]


def get_cotisation_defaut(identifiant: str) -> Optional[DefinitionCotisation]:
    """Copie d'une cotisation par defaut, ou None si l'identifiant est inconnu."""
    for d in _CATALOGUE_DEFAUT:
        if d.id == identifiant:
            return d.copie()
    return None


# --- Chargement d'un catalogue externe ---

class DefinitionCotisationSchema(BaseModel):
    """Schema d'une cotisation lue depuis un fichier de configuration."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    nom: str = Field(..., min_length=1, validation_alias=AliasChoices("nom", "name"))
    categorie: CategorieCotisation = Field(
        ..., validation_alias=AliasChoices("categorie", "category"),
    )
    taux_salarial: Decimal = Field(
        default=Decimal("0"), ge=0, le=100,
        validation_alias=AliasChoices("taux_salarial", "employeeRate", "employee_rate"),
    )
    taux_patronal: Decimal = Field(
        default=Decimal("0"), ge=0, le=100,
        validation_alias=AliasChoices("taux_patronal", "employerRate", "employer_rate"),
    )
    type_assiette: TypeAssiette = Field(
        default=TypeAssiette.TOTAL,
        validation_alias=AliasChoices("type_assiette", "baseType", "base_type"),
    )
    obligatoire: bool = Field(
        default=True, validation_alias=AliasChoices("obligatoire", "isRequired", "is_required"),
    )
    description: Optional[str] = None

    @field_validator("categorie", mode="before")
    @classmethod
    def _categorie_historique(cls, v: Any) -> Any:
        if isinstance(v, str):
            return ALIAS_CATEGORIES.get(v, v)
        return v

    @field_validator("type_assiette", mode="before")
    @classmethod
    def _assiette_historique(cls, v: Any) -> Any:
        if isinstance(v, str):
            return ALIAS_ASSIETTES.get(v, v)
        return v

    @field_validator("taux_salarial", "taux_patronal", mode="before")
    @classmethod
    def _taux_depuis_float(cls, v: Any) -> Any:
        if isinstance(v, float):
            return str(v)
        return v

    def vers_definition(self) -> DefinitionCotisation:
        return DefinitionCotisation(
            id=self.id,
            nom=self.nom,
            categorie=self.categorie,
            taux_salarial=self.taux_salarial,
            taux_patronal=self.taux_patronal,
            type_assiette=self.type_assiette,
            obligatoire=self.obligatoire,
            description=self.description or "",
        )


@dataclass(frozen=True)
class DefinitionValide:
    definition: DefinitionCotisation


@dataclass(frozen=True)
class DefinitionInvalide:
    identifiant: str
    raison: str


ResultatChargement = Union[DefinitionValide, DefinitionInvalide]


def _raison(erreur: ValidationError) -> str:
    morceaux = []
    for e in erreur.errors():
        champ = ".".join(str(p) for p in e.get("loc", ())) or "entree"
        morceaux.append(f"{champ}: {e.get('msg', '')}")
    return "; ".join(morceaux)


def charger_definition(data: Any) -> ResultatChargement:
    """Valide une entree brute de catalogue."""
    identifiant = str(data.get("id", "?")) if isinstance(data, dict) else "?"
    try:
        schema = DefinitionCotisationSchema.model_validate(data)
    except ValidationError as e:
        return DefinitionInvalide(identifiant=identifiant, raison=_raison(e))
    return DefinitionValide(definition=schema.vers_definition())


def charger_catalogue(
    entrees: Iterable[Any],
) -> tuple[list[DefinitionCotisation], list[DefinitionInvalide]]:
    """Valide un catalogue complet.

    Retourne (definitions valides dans l'ordre d'origine, entrees rejetees).
    Chaque rejet est journalise une seule fois ici.
    """
    definitions: list[DefinitionCotisation] = []
    invalides: list[DefinitionInvalide] = []
    vus: set[str] = set()

    for entree in entrees:
        resultat = charger_definition(entree)
        if isinstance(resultat, DefinitionValide) and resultat.definition.id in vus:
            resultat = DefinitionInvalide(
                identifiant=resultat.definition.id, raison="identifiant en double",
            )
        if isinstance(resultat, DefinitionInvalide):
            logger.warning(
                "Cotisation ignoree '%s' : %s", resultat.identifiant, resultat.raison,
            )
            invalides.append(resultat)
            continue
        vus.add(resultat.definition.id)
        definitions.append(resultat.definition)

    return definitions, invalides


def charger_catalogue_json(
    chemin: Path,
) -> tuple[list[DefinitionCotisation], list[DefinitionInvalide]]:
    """Charge un catalogue depuis un fichier JSON.

    Le fichier contient soit une liste de cotisations, soit un objet avec
    une cle "cotisations".
    """
    try:
        with open(chemin, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise CatalogueError(f"Catalogue illisible : {chemin} ({e})") from e
    except json.JSONDecodeError as e:
        raise CatalogueError(f"Catalogue JSON invalide : {chemin} ({e})") from e

    if isinstance(data, dict):
        data = data.get("cotisations")
    if not isinstance(data, list):
        raise CatalogueError(f"Catalogue sans liste de cotisations : {chemin}")

    definitions, invalides = charger_catalogue(data)
    logger.info(
        "Catalogue %s : %d cotisations chargees, %d rejetees",
        chemin.name, len(definitions), len(invalides),
    )
    return definitions, invalides
