"""Export du livre de paie (une ligne par bulletin).

Formats : JSON (bulletins complets), CSV et XLSX (tableau recapitulatif).
Les montants sont arrondis au centime a cette frontiere uniquement.
"""

import csv
import json
from pathlib import Path
from typing import Sequence

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from moteur_paie.config.constants import FORMATS_EXPORT
from moteur_paie.core.exceptions import ExportError
from moteur_paie.rules.agregation import BulletinPaie
from moteur_paie.utils.number_utils import arrondir

COLONNES = [
    ("salarie", "Salarie"),
    ("periode_debut", "Debut periode"),
    ("periode_fin", "Fin periode"),
    ("date_paiement", "Date paiement"),
    ("salaire_brut", "Salaire brut"),
    ("total_salarial", "Cotisations salariales"),
    ("total_patronal", "Cotisations patronales"),
    ("net_avant_impot", "Net avant impot"),
    ("net_imposable", "Net imposable"),
    ("montant_pas", "Prelevement a la source"),
    ("net_a_payer", "Net a payer"),
    ("net_social", "Net social"),
    ("cout_employeur", "Cout employeur"),
    ("cumul_brut", "Cumul brut"),
    ("cumul_net", "Cumul net"),
]

_COLONNES_MONTANTS = {
    "salaire_brut", "total_salarial", "total_patronal", "net_avant_impot",
    "net_imposable", "montant_pas", "net_a_payer", "net_social", "cout_employeur",
    "cumul_brut", "cumul_net",
}


class ExportLivrePaie:
    """Exporte une sequence de bulletins calcules."""

    def __init__(self, nom_feuille_xlsx: str = "Livre de paie"):
        self.nom_feuille_xlsx = nom_feuille_xlsx

    def ligne(self, bulletin: BulletinPaie) -> dict:
        """Ligne recapitulative d'un bulletin (montants arrondis)."""
        cumuls = bulletin.cumuls
        return {
            "salarie": bulletin.salarie,
            "periode_debut": bulletin.periode_debut,
            "periode_fin": bulletin.periode_fin,
            "date_paiement": bulletin.date_paiement,
            "salaire_brut": arrondir(bulletin.salaire_brut),
            "total_salarial": arrondir(bulletin.total_salarial),
            "total_patronal": arrondir(bulletin.total_patronal),
            "net_avant_impot": arrondir(bulletin.nets.net_avant_impot),
            "net_imposable": arrondir(bulletin.nets.net_imposable),
            "montant_pas": arrondir(bulletin.nets.montant_pas),
            "net_a_payer": arrondir(bulletin.nets.net_a_payer),
            "net_social": arrondir(bulletin.nets.net_social),
            "cout_employeur": arrondir(bulletin.cout_employeur),
            "cumul_brut": arrondir(cumuls.cumul_brut) if cumuls else None,
            "cumul_net": arrondir(cumuls.cumul_net) if cumuls else None,
        }

    def generer(self, bulletins: Sequence[BulletinPaie], chemin_sortie: Path, format_export: str) -> Path:
        if format_export not in FORMATS_EXPORT:
            raise ExportError(
                f"Format d'export non supporte : {format_export} "
                f"(acceptes : {', '.join(FORMATS_EXPORT)})"
            )
        generateur = getattr(self, f"generer_{format_export}")
        return generateur(bulletins, chemin_sortie)

    def generer_json(self, bulletins: Sequence[BulletinPaie], chemin_sortie: Path) -> Path:
        """Export JSON complet (detail des cotisations compris)."""
        data = {
            "nb_bulletins": len(bulletins),
            "bulletins": [b.to_dict() for b in bulletins],
        }
        try:
            chemin_sortie.parent.mkdir(parents=True, exist_ok=True)
            with open(chemin_sortie, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2, default=str)
        except OSError as e:
            raise ExportError(f"Ecriture impossible : {chemin_sortie} ({e})") from e
        return chemin_sortie

    def generer_csv(self, bulletins: Sequence[BulletinPaie], chemin_sortie: Path) -> Path:
        """Export CSV recapitulatif (separateur point-virgule)."""
        try:
            chemin_sortie.parent.mkdir(parents=True, exist_ok=True)
            with open(chemin_sortie, "w", encoding="utf-8", newline="") as f:
                writer = csv.writer(f, delimiter=";")
                writer.writerow([titre for _, titre in COLONNES])
                for b in bulletins:
                    ligne = self.ligne(b)
                    writer.writerow(["" if ligne[c] is None else str(ligne[c]) for c, _ in COLONNES])
        except OSError as e:
            raise ExportError(f"Ecriture impossible : {chemin_sortie} ({e})") from e
        return chemin_sortie

    def generer_xlsx(self, bulletins: Sequence[BulletinPaie], chemin_sortie: Path) -> Path:
        """Export XLSX recapitulatif, montants en cellules numeriques."""
        wb = Workbook()
        ws = wb.active
        ws.title = self.nom_feuille_xlsx[:31]

        ws.append([titre for _, titre in COLONNES])
        for cell in ws[1]:
            cell.font = Font(bold=True)

        for b in bulletins:
            ligne = self.ligne(b)
            ws.append([
                float(ligne[c]) if c in _COLONNES_MONTANTS and ligne[c] is not None else ligne[c]
                for c, _ in COLONNES
            ])

        for i, (cle, _) in enumerate(COLONNES, start=1):
            lettre = get_column_letter(i)
            ws.column_dimensions[lettre].width = 16
            if cle in _COLONNES_MONTANTS:
                for cell in ws[lettre][1:]:
                    cell.number_format = "#,##0.00"

        try:
            chemin_sortie.parent.mkdir(parents=True, exist_ok=True)
            wb.save(chemin_sortie)
        except OSError as e:
            raise ExportError(f"Ecriture impossible : {chemin_sortie} ({e})") from e
        return chemin_sortie
