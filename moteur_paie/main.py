"""Point d'entree CLI pour Moteur Paie.

Usage :
    moteur-paie donnees_salarie.json [--catalogue cotisations.json] [--format json|csv|xlsx] [--output DIR]
"""

import argparse
import logging
import sys
from pathlib import Path

from moteur_paie.config.constants import FORMATS_EXPORT
from moteur_paie.config.settings import AppConfig
from moteur_paie.core.exceptions import MoteurPaieError
from moteur_paie.core.orchestrator import OrchestrateurPaie
from moteur_paie.utils.number_utils import formater_montant


def configurer_logging(verbose: bool = False) -> None:
    """Configure le logging de l'application."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)-7s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def creer_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="moteur-paie",
        description="Calcul des cotisations sociales, nets et cumuls de paie.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"Formats d'export : {', '.join(FORMATS_EXPORT)}",
    )
    parser.add_argument(
        "donnees",
        type=Path,
        help="Fichier JSON des bulletins d'un salarie",
    )
    parser.add_argument(
        "--catalogue", "-c",
        type=Path,
        default=None,
        help="Catalogue de cotisations JSON (defaut : taux reglementaires)",
    )
    parser.add_argument(
        "--format", "-f",
        choices=list(FORMATS_EXPORT),
        default=None,
        help="Format du livre de paie exporte (defaut: json)",
    )
    parser.add_argument(
        "--output", "-o",
        type=Path,
        default=None,
        help="Repertoire de sortie pour l'export",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Mode verbeux (debug)",
    )
    return parser


def afficher_synthese(orchestrateur: OrchestrateurPaie) -> None:
    print(f"\n{'='*72}")
    print(f"  {'Periode':<23} {'Brut':>14} {'Net a payer':>14} {'Cumul brut':>16}")
    for b in orchestrateur.bulletins:
        periode = f"{b.periode_debut:%d/%m/%Y}-{b.periode_fin:%d/%m/%Y}"
        cumul = formater_montant(b.cumuls.cumul_brut) if b.cumuls else "-"
        print(
            f"  {periode:<23} {formater_montant(b.salaire_brut):>14} "
            f"{formater_montant(b.nets.net_a_payer):>14} {cumul:>16}"
        )
    print(f"{'='*72}\n")


def main(argv: list[str] | None = None) -> int:
    """Point d'entree principal."""
    parser = creer_argument_parser()
    args = parser.parse_args(argv)

    configurer_logging(args.verbose)
    logger = logging.getLogger("moteur_paie")

    if not args.donnees.exists():
        logger.error("Fichier introuvable : %s", args.donnees)
        return 1
    if args.catalogue and not args.catalogue.exists():
        logger.error("Catalogue introuvable : %s", args.catalogue)
        return 1

    # Configuration
    config = AppConfig.depuis_environnement()
    if args.output:
        config.exports_dir = args.output
        config.exports_dir.mkdir(parents=True, exist_ok=True)

    orchestrateur = OrchestrateurPaie(config)

    try:
        chemin_export = orchestrateur.traiter_fichier(
            args.donnees,
            chemin_catalogue=args.catalogue,
            format_export=args.format,
        )
    except MoteurPaieError as e:
        logger.error("Erreur de calcul : %s", e)
        return 1
    except Exception as e:
        logger.exception("Erreur inattendue : %s", e)
        return 2

    afficher_synthese(orchestrateur)
    print(f"  Export : {chemin_export}\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
