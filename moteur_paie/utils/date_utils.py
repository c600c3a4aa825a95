"""Utilitaires de parsing et manipulation de dates."""

from datetime import date, datetime
from typing import Optional, Union

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


def parser_date(valeur: Union[str, date, datetime, None]) -> Optional[date]:
    """Parse une date ISO ou au format francais (jour en premier)."""
    if valeur is None:
        return None
    if isinstance(valeur, datetime):
        return valeur.date()
    if isinstance(valeur, date):
        return valeur
    valeur = valeur.strip()
    if not valeur:
        return None
    # Les dates ISO (2024-01-31) ne doivent pas etre lues jour en premier
    dayfirst = not (len(valeur) >= 4 and valeur[:4].isdigit())
    try:
        return date_parser.parse(valeur, dayfirst=dayfirst).date()
    except (ValueError, OverflowError):
        return None


def debut_annee(annee: int) -> date:
    return date(annee, 1, 1)


def fin_de_mois(d: date) -> date:
    """Dernier jour du mois de la date."""
    return d + relativedelta(day=31)


def periode_mensuelle(annee: int, mois: int) -> tuple[date, date]:
    """Premier et dernier jour d'un mois de paie."""
    debut = date(annee, mois, 1)
    return debut, fin_de_mois(debut)
