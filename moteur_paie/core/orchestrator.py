"""Orchestrateur du calcul de paie.

Coordonne l'ensemble du workflow :
1. Chargement du catalogue de cotisations (defaut ou fichier JSON)
2. Lecture des donnees de paie et construction des bulletins
3. Calcul des cumuls annuels et des conges payes
4. Export du livre de paie
"""

import json
import logging
import uuid
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

from moteur_paie.config.catalogue import charger_catalogue_json, get_cotisations_defaut
from moteur_paie.config.constants import DUREE_LEGALE_HEBDO
from moteur_paie.config.settings import AppConfig
from moteur_paie.core.exceptions import DonneesPaieError
from moteur_paie.core.journal_audit import JournalAudit
from moteur_paie.export.livre_paie import ExportLivrePaie
from moteur_paie.models.bulletin import DefinitionCotisation, LigneSalaire
from moteur_paie.rules.agregation import BulletinPaie, calculer_salaire_prorata
from moteur_paie.rules.cumuls import SuiviCumuls, partitionner_par_annee
from moteur_paie.utils.date_utils import parser_date, periode_mensuelle
from moteur_paie.utils.number_utils import arrondir, to_decimal

logger = logging.getLogger("moteur_paie")

_VRAI = {"true", "vrai", "oui", "yes", "1"}
_FAUX = {"false", "faux", "non", "no", "0", ""}


def _champ(data: dict, *cles: str, defaut: Any = None) -> Any:
    for cle in cles:
        if cle in data and data[cle] is not None:
            return data[cle]
    return defaut


def _booleen(valeur: Any, nom: str) -> bool:
    """Lit un drapeau JSON ; "false" en texte vaut False."""
    if isinstance(valeur, bool):
        return valeur
    if isinstance(valeur, int) and valeur in (0, 1):
        return bool(valeur)
    if isinstance(valeur, str):
        texte = valeur.strip().lower()
        if texte in _VRAI:
            return True
        if texte in _FAUX:
            return False
    raise DonneesPaieError(f"Valeur booleenne invalide pour '{nom}' : {valeur!r}")


def _annee(valeur: Any) -> Optional[int]:
    if valeur is None:
        return None
    try:
        return int(str(valeur).strip())
    except ValueError as e:
        raise DonneesPaieError(f"Annee fiscale invalide : {valeur!r}") from e


def lire_donnees_paie(chemin: Path) -> dict:
    """Lit un fichier JSON de donnees de paie d'un salarie."""
    try:
        with open(chemin, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise DonneesPaieError(f"Fichier illisible : {chemin} ({e})") from e
    except json.JSONDecodeError as e:
        raise DonneesPaieError(f"JSON invalide : {chemin} ({e})") from e

    if not isinstance(data, dict) or not isinstance(data.get("bulletins"), list):
        raise DonneesPaieError(f"Aucune liste 'bulletins' dans {chemin}")
    return data


def construire_ligne(data: dict) -> LigneSalaire:
    base = _champ(data, "base")
    taux = _champ(data, "taux", "rate")
    montant = _champ(data, "montant", "amount")
    return LigneSalaire(
        libelle=str(_champ(data, "libelle", "label", defaut="")),
        montant=to_decimal(montant) if montant is not None else None,
        base=to_decimal(base) if base is not None else None,
        taux=to_decimal(taux) if taux is not None else None,
        est_gain=_booleen(_champ(data, "est_gain", "isAddition", defaut=True), "est_gain"),
        desactivee=_booleen(_champ(data, "desactivee", "disabled", defaut=False), "desactivee"),
    )


def construire_bulletin(
    data: dict,
    cotisations: list[DefinitionCotisation],
    *,
    salarie: str = "",
    est_cadre: bool = False,
    config: Optional[AppConfig] = None,
    taux_pas: Any = None,
) -> BulletinPaie:
    """Construit un bulletin a partir d'une entree du fichier de donnees.

    La periode est donnee soit par "periode_debut"/"periode_fin", soit par
    "mois" (AAAA-MM). Le brut vient des "lignes" ou de "salaire_brut" ; avec
    "heures_contrat", "salaire_brut" est un salaire temps plein proratise.
    "taux_pas" (prelevement a la source) remplace le taux du salarie.
    """
    if "mois" in data:
        try:
            annee, mois = (int(p) for p in str(data["mois"]).split("-")[:2])
            debut, fin = periode_mensuelle(annee, mois)
        except ValueError as e:
            raise DonneesPaieError(f"Mois invalide : {data['mois']!r}") from e
    else:
        debut = parser_date(_champ(data, "periode_debut", "periodStart"))
        fin = parser_date(_champ(data, "periode_fin", "periodEnd"))
    if debut is None or fin is None:
        raise DonneesPaieError(f"Periode manquante ou illisible : {data}")

    salaire_brut = _champ(data, "salaire_brut", "grossSalary")
    heures = _champ(data, "heures_contrat", "workingHours")
    if heures is not None and salaire_brut is not None:
        try:
            salaire_brut = calculer_salaire_prorata(
                to_decimal(salaire_brut),
                to_decimal(heures),
                to_decimal(_champ(data, "heures_temps_plein", defaut=DUREE_LEGALE_HEBDO)),
            )
        except ValueError as e:
            raise DonneesPaieError(str(e)) from e

    plafonds = config.calcul.plafonds_ss if config else None
    try:
        bulletin = BulletinPaie(
            periode_debut=debut,
            periode_fin=fin,
            date_paiement=parser_date(_champ(data, "date_paiement", "paymentDate")),
            annee_fiscale=_annee(_champ(data, "annee_fiscale", "fiscalYear")),
            lignes=[construire_ligne(l) for l in _champ(data, "lignes", "items", defaut=[])],
            salaire_brut=salaire_brut,
            cotisations=cotisations,
            est_cadre=_booleen(_champ(data, "est_cadre", "isExecutive", defaut=est_cadre), "est_cadre"),
            plafond=_champ(data, "plafond_ss"),
            plafonds=plafonds,
            salarie=salarie,
            taux_pas=to_decimal(_champ(data, "taux_pas", "taxRate", defaut=taux_pas)),
        )
    except ValueError as e:
        raise DonneesPaieError(str(e)) from e

    try:
        for identifiant, active in _champ(data, "activer", defaut={}).items():
            bulletin.activer_cotisation(identifiant, _booleen(active, identifiant))
        for identifiant, taux in _champ(data, "taux", defaut={}).items():
            bulletin.modifier_taux(
                identifiant,
                taux_salarial=taux.get("taux_salarial"),
                taux_patronal=taux.get("taux_patronal"),
            )
    except KeyError as e:
        raise DonneesPaieError(str(e)) from e

    if _booleen(_champ(data, "verrouille", defaut=False), "verrouille"):
        bulletin.verrouiller()
    return bulletin


class OrchestrateurPaie:
    """Coordonne le calcul des bulletins d'un salarie."""

    def __init__(self, config: AppConfig | None = None):
        self.config = config or AppConfig()
        self.export = ExportLivrePaie(self.config.export.nom_feuille_xlsx)
        self.audit = JournalAudit(self.config.audit_log_path)
        self.session_id = str(uuid.uuid4())
        self.bulletins: list[BulletinPaie] = []
        self.suivi: Optional[SuiviCumuls] = None

    def charger_cotisations(self, chemin_catalogue: Optional[Path] = None) -> list[DefinitionCotisation]:
        if chemin_catalogue is None:
            return get_cotisations_defaut()
        definitions, invalides = charger_catalogue_json(chemin_catalogue)
        for inv in invalides:
            self.audit.log_cotisation_rejetee(self.session_id, inv.identifiant, inv.raison)
        return definitions

    def calculer(self, data: dict, cotisations: list[DefinitionCotisation]) -> list[BulletinPaie]:
        """Construit les bulletins, puis cumule chaque annee fiscale."""
        salarie = str(data.get("salarie", ""))
        est_cadre = _booleen(data.get("est_cadre", False), "est_cadre")
        taux_pas = _champ(data, "taux_pas", "taxRate")

        bulletins = [
            construire_bulletin(
                entree, cotisations,
                salarie=salarie, est_cadre=est_cadre, config=self.config, taux_pas=taux_pas,
            )
            for entree in data["bulletins"]
        ]
        jours_pris = {
            id(b): to_decimal(_champ(e, "jours_conges_pris", defaut=Decimal("0")))
            for b, e in zip(bulletins, data["bulletins"])
        }

        self.suivi = SuiviCumuls(salarie)
        ordonnes = []
        for annee, groupe in partitionner_par_annee(bulletins).items():
            logger.info("  Annee %s : %d bulletin(s)", annee, len(groupe))
            ordonnes.extend(groupe)
        for bulletin in ordonnes:
            self.suivi.ajouter(bulletin, jours_pris[id(bulletin)])
            self.audit.log_calcul(
                self.session_id,
                salarie,
                f"{bulletin.periode_debut.isoformat()}/{bulletin.periode_fin.isoformat()}",
                str(arrondir(bulletin.salaire_brut)),
                str(arrondir(bulletin.nets.net_a_payer)),
            )

        self.bulletins = ordonnes
        return ordonnes

    def traiter_fichier(
        self,
        chemin_donnees: Path,
        chemin_catalogue: Optional[Path] = None,
        format_export: Optional[str] = None,
    ) -> Path:
        """Point d'entree principal : calcule et exporte le livre de paie.

        Args:
            chemin_donnees: Fichier JSON des bulletins d'un salarie.
            chemin_catalogue: Catalogue de cotisations JSON (defaut reglementaire sinon).
            format_export: "json", "csv" ou "xlsx".

        Returns:
            Chemin vers le fichier exporte.
        """
        format_export = format_export or self.config.export.format_defaut
        logger.info("Demarrage du calcul - Session %s", self.session_id)
        self.audit.log("demarrage_calcul", self.session_id, fichier=str(chemin_donnees))

        try:
            cotisations = self.charger_cotisations(chemin_catalogue)
            data = lire_donnees_paie(chemin_donnees)
            bulletins = self.calculer(data, cotisations)

            nom = f"livre_paie_{chemin_donnees.stem}.{format_export}"
            chemin_export = self.export.generer(
                bulletins, self.config.exports_dir / nom, format_export,
            )
        except Exception as e:
            self.audit.log_erreur(self.session_id, "calcul", str(e))
            raise

        self.audit.log_export(self.session_id, format_export, str(chemin_export))
        logger.info("Livre de paie exporte : %s", chemin_export)
        return chemin_export
