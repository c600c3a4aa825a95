"""Journal d'audit des calculs de paie.

Une ligne JSON par evenement, fichier ouvert en ajout seul. Chaque bulletin
calcule y laisse son brut et son net arrondis, de sorte qu'un livre de paie
exporte peut etre rapproche du calcul qui l'a produit.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger("moteur_paie.audit")

SUCCES = "succes"
REJET = "rejet"
ECHEC = "echec"


class JournalAudit:
    """Trace les calculs, les cotisations rejetees et les exports."""

    def __init__(self, log_path: Path):
        self.log_path = log_path
        self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def log(
        self,
        operation: str,
        session_id: str,
        *,
        salarie: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        fichier: Optional[str] = None,
        resultat: str = SUCCES,
    ) -> None:
        entree: dict[str, Any] = {
            "timestamp": datetime.now().isoformat(timespec="seconds"),
            "session_id": session_id,
            "operation": operation,
            "resultat": resultat,
        }
        for cle, valeur in (("salarie", salarie), ("fichier", fichier), ("details", details)):
            if valeur:
                entree[cle] = valeur

        # Decimal et dates sont ecrits sous leur forme texte
        ligne = json.dumps(entree, ensure_ascii=False, default=str)
        try:
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(ligne + "\n")
        except OSError as e:
            logger.error("Journal d'audit non ecrit (%s) : %s", operation, e)

    def log_calcul(self, session_id: str, salarie: str, periode: str, brut, net) -> None:
        self.log(
            "calcul_bulletin",
            session_id,
            salarie=salarie,
            details={"periode": periode, "brut": brut, "net_a_payer": net},
        )

    def log_cotisation_rejetee(self, session_id: str, identifiant: str, raison: str) -> None:
        self.log(
            "catalogue_cotisation_rejetee",
            session_id,
            details={"cotisation": identifiant, "raison": raison},
            resultat=REJET,
        )

    def log_export(self, session_id: str, format_export: str, chemin: str) -> None:
        self.log("export_livre_paie", session_id, fichier=chemin, details={"format": format_export})

    def log_erreur(self, session_id: str, operation: str, erreur: str) -> None:
        self.log(operation, session_id, details={"erreur": erreur}, resultat=ECHEC)

    def lire_journal(self, operation: Optional[str] = None) -> list[dict]:
        """Relit le journal, eventuellement filtre sur une operation.

        Une ligne illisible (ecriture interrompue) est ignoree et signalee.
        """
        if not self.log_path.exists():
            return []
        entrees = []
        with open(self.log_path, "r", encoding="utf-8") as f:
            for numero, ligne in enumerate(f, start=1):
                ligne = ligne.strip()
                if not ligne:
                    continue
                try:
                    entree = json.loads(ligne)
                except json.JSONDecodeError:
                    logger.warning("Ligne %d du journal d'audit illisible", numero)
                    continue
                if operation is None or entree.get("operation") == operation:
                    entrees.append(entree)
        return entrees
