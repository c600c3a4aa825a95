"""Configuration globale de l'application."""

import logging
import os
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Optional

from moteur_paie.config.constants import (
    ANNEE_REFERENCE,
    PLAFONDS_SS_MENSUELS,
    PLAFOND_SS_MENSUEL,
    QUANTUM_CENTIME,
)
from moteur_paie.core.exceptions import ConfigError

logger = logging.getLogger("moteur_paie.config")


def get_plafond_mensuel(annee: int, plafonds: Optional[dict[int, Decimal]] = None) -> Decimal:
    """Retourne le plafond mensuel de securite sociale d'une annee fiscale.

    Une table fournie par l'appelant prime sur la table reglementaire.
    Une annee inconnue retombe sur le plafond de l'annee de reference.
    """
    table = dict(PLAFONDS_SS_MENSUELS)
    if plafonds:
        table.update(plafonds)
    plafond = table.get(annee)
    if plafond is None:
        logger.warning(
            "Plafond SS inconnu pour %s, plafond %s (%s) utilise",
            annee, PLAFOND_SS_MENSUEL, ANNEE_REFERENCE,
        )
        return PLAFOND_SS_MENSUEL
    return plafond


@dataclass
class CalculConfig:
    """Configuration calcul."""
    annee_reference: int = ANNEE_REFERENCE
    plafonds_ss: dict[int, Decimal] = field(default_factory=dict)
    quantum_arrondi: Decimal = QUANTUM_CENTIME

    def plafond(self, annee: Optional[int] = None) -> Decimal:
        return get_plafond_mensuel(annee or self.annee_reference, self.plafonds_ss)


@dataclass
class ExportConfig:
    """Configuration exports."""
    format_defaut: str = "json"
    nom_feuille_xlsx: str = "Livre de paie"


@dataclass
class AppConfig:
    """Configuration principale de l'application."""
    base_dir: Path = field(default_factory=lambda: Path(__file__).parent.parent.parent)
    data_dir: Path = field(default=None)
    exports_dir: Path = field(default=None)
    audit_log_path: Path = field(default=None)

    calcul: CalculConfig = field(default_factory=CalculConfig)
    export: ExportConfig = field(default_factory=ExportConfig)

    def __post_init__(self):
        if self.data_dir is None:
            self.data_dir = self.base_dir / "data"
        if self.exports_dir is None:
            self.exports_dir = self.data_dir / "exports"
        if self.audit_log_path is None:
            self.audit_log_path = self.data_dir / "audit.log"

        # Creer les repertoires si necessaire
        for d in [self.data_dir, self.exports_dir]:
            d.mkdir(parents=True, exist_ok=True)

    @classmethod
    def depuis_environnement(cls, **kwargs) -> "AppConfig":
        """Construit la configuration en tenant compte des variables d'environnement.

        - MOTEUR_PAIE_DATA_DIR : repertoire de donnees
        - MOTEUR_PAIE_ANNEE : annee de reference pour le plafond SS
        """
        data_dir = os.environ.get("MOTEUR_PAIE_DATA_DIR")
        if data_dir and "data_dir" not in kwargs:
            kwargs["data_dir"] = Path(data_dir)

        annee = os.environ.get("MOTEUR_PAIE_ANNEE")
        if annee and "calcul" not in kwargs:
            try:
                kwargs["calcul"] = CalculConfig(annee_reference=int(annee))
            except ValueError as e:
                raise ConfigError(f"MOTEUR_PAIE_ANNEE invalide : {annee!r}") from e

        return cls(**kwargs)
