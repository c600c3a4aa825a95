"""Utilitaires pour le traitement des montants et nombres."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from moteur_paie.config.constants import QUANTUM_CENTIME


def to_decimal(valeur: Any) -> Decimal:
    """Convertit une valeur saisie (int, float, str, None) en Decimal.

    Les floats passent par leur representation texte pour eviter les
    artefacts binaires (0.1 -> Decimal("0.1")). None et les valeurs
    illisibles valent zero.
    """
    if valeur is None:
        return Decimal("0")
    if isinstance(valeur, Decimal):
        return valeur
    if isinstance(valeur, bool):
        return Decimal(int(valeur))
    if isinstance(valeur, (int, float)):
        return Decimal(str(valeur))
    v = str(valeur).strip().replace(" ", "").replace("\u00a0", "")
    if not v:
        return Decimal("0")
    if "," in v and "." not in v:
        v = v.replace(",", ".")
    try:
        return Decimal(v)
    except InvalidOperation:
        return Decimal("0")


def arrondir(montant: Decimal, quantum: Decimal = QUANTUM_CENTIME) -> Decimal:
    """Arrondit un montant au centime (arrondi commercial)."""
    return to_decimal(montant).quantize(quantum, ROUND_HALF_UP)


def formater_montant(montant: Decimal, devise: str = "EUR") -> str:
    """Formate un montant a la francaise : "1 668,37 EUR"."""
    texte = f"{arrondir(montant):,.2f}"
    texte = texte.replace(",", " ").replace(".", ",")
    return f"{texte} {devise}" if devise else texte
