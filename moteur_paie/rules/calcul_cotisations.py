"""Calcul des cotisations sociales d'un bulletin.

Regles d'assiette :
- total : salaire brut entier
- plafonnee / tranche A : brut limite au plafond de la securite sociale
- tranche B : part du brut comprise entre 1 et 8 plafonds

Aucun arrondi n'est applique ici : les montants restent en pleine precision
et ne sont arrondis qu'a l'affichage ou a l'export. Le calcul ne leve jamais
d'exception pour une definition mal configuree ; l'anomalie est journalisee
et la cotisation vaut zero.
"""

import logging
from decimal import Decimal
from typing import Iterable, Union

from moteur_paie.config.constants import (
    MULTIPLE_PLAFOND_TRANCHE_B,
    PLAFOND_SS_MENSUEL,
    TypeAssiette,
)
from moteur_paie.models.bulletin import (
    DefinitionCotisation,
    DetailCotisation,
    MontantsCotisation,
    TotauxCotisations,
)
from moteur_paie.utils.number_utils import to_decimal

logger = logging.getLogger("moteur_paie.calcul")

ZERO = Decimal("0")
CENT = Decimal("100")


def calculer_assiette(
    type_assiette: Union[TypeAssiette, str],
    salaire_brut: Decimal,
    plafond: Decimal = PLAFOND_SS_MENSUEL,
) -> Decimal:
    """Calcule l'assiette de cotisation apres plafonnement."""
    brut = to_decimal(salaire_brut)
    plafond = to_decimal(plafond)

    try:
        type_assiette = TypeAssiette(type_assiette)
    except ValueError:
        logger.warning("Type d'assiette inconnu '%s' : assiette nulle", type_assiette)
        return ZERO

    if type_assiette == TypeAssiette.TOTAL:
        return brut

    if type_assiette in (TypeAssiette.PLAFONNEE, TypeAssiette.TRANCHE_A):
        return min(brut, plafond)

    # Tranche B : entre 1 et 8 plafonds
    return max(ZERO, min(brut, plafond * MULTIPLE_PLAFOND_TRANCHE_B) - plafond)


def _taux_applicable(definition: DefinitionCotisation, taux: Decimal, cote: str) -> Decimal:
    taux = to_decimal(taux)
    if taux < 0:
        logger.warning(
            "Taux %s negatif (%s) pour '%s' : cotisation nulle", cote, taux, definition.id,
        )
        return ZERO
    return taux


def _appliquer_taux(definition: DefinitionCotisation, assiette: Decimal) -> MontantsCotisation:
    taux_salarial = _taux_applicable(definition, definition.taux_salarial, "salarial")
    taux_patronal = _taux_applicable(definition, definition.taux_patronal, "patronal")
    return MontantsCotisation(
        montant_salarial=assiette * taux_salarial / CENT,
        montant_patronal=assiette * taux_patronal / CENT,
    )


def calculer_montants(
    definition: DefinitionCotisation,
    salaire_brut: Decimal,
    plafond: Decimal = PLAFOND_SS_MENSUEL,
) -> MontantsCotisation:
    """Calcule les parts salariale et patronale d'une cotisation."""
    assiette = calculer_assiette(definition.type_assiette, salaire_brut, plafond)
    return _appliquer_taux(definition, assiette)


def calculer_totaux(
    definitions: Iterable[DefinitionCotisation],
    salaire_brut: Decimal,
    plafond: Decimal = PLAFOND_SS_MENSUEL,
) -> TotauxCotisations:
    """Totalise les cotisations actives, dans l'ordre des definitions."""
    totaux = TotauxCotisations()
    for definition in definitions:
        if not definition.obligatoire:
            continue
        assiette = calculer_assiette(definition.type_assiette, salaire_brut, plafond)
        montants = _appliquer_taux(definition, assiette)
        totaux.total_salarial += montants.montant_salarial
        totaux.total_patronal += montants.montant_patronal
        totaux.details.append(DetailCotisation(
            id=definition.id,
            nom=definition.nom,
            categorie=definition.categorie,
            assiette=assiette,
            taux_salarial=to_decimal(definition.taux_salarial),
            taux_patronal=to_decimal(definition.taux_patronal),
            montant_salarial=montants.montant_salarial,
            montant_patronal=montants.montant_patronal,
        ))

    logger.debug(
        "Cotisations sur %s : salarial=%s patronal=%s (%d lignes)",
        salaire_brut, totaux.total_salarial, totaux.total_patronal, len(totaux.details),
    )
    return totaux


def cout_employeur(salaire_brut: Decimal, total_patronal: Decimal) -> Decimal:
    """Cout total employeur : brut + cotisations patronales."""
    return to_decimal(salaire_brut) + to_decimal(total_patronal)
