"""Test d'integration du workflow complet de calcul de paie."""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import json
from datetime import date
from decimal import Decimal

import pytest

from moteur_paie.config.settings import AppConfig
from moteur_paie.core.exceptions import DonneesPaieError
from moteur_paie.core.orchestrator import OrchestrateurPaie
from moteur_paie.main import main

FIXTURES = Path(__file__).parent.parent / "fixtures"


def _config(tmp_path):
    return AppConfig(
        base_dir=tmp_path,
        data_dir=tmp_path / "data",
        exports_dir=tmp_path / "exports",
        audit_log_path=tmp_path / "audit.log",
    )


class TestWorkflowComplet:
    """Tests du calcul de bout en bout."""

    def test_livre_paie_json(self, tmp_path):
        """Calcule trois mois sur deux annees fiscales et exporte en JSON."""
        orchestrateur = OrchestrateurPaie(_config(tmp_path))

        chemin = orchestrateur.traiter_fichier(FIXTURES / "donnees_salarie.json")

        assert chemin == tmp_path / "exports" / "livre_paie_donnees_salarie.json"
        data = json.loads(chemin.read_text(encoding="utf-8"))
        assert data["nb_bulletins"] == 3
        assert [b["periode_debut"] for b in data["bulletins"]] == [
            "2024-11-01", "2024-12-01", "2025-01-01",
        ]

        novembre, decembre, janvier = orchestrateur.bulletins
        assert novembre.salaire_brut == Decimal("1818.37")
        assert novembre.salarie == "Durand Claire"
        assert decembre.date_paiement == date(2024, 12, 31)

        # Cumuls : remise a zero au changement d'annee fiscale
        assert decembre.cumuls.cumul_brut == Decimal("4818.37")
        assert decembre.cumuls.cumul_net == novembre.nets.net_a_payer + decembre.nets.net_a_payer
        assert janvier.cumuls.cumul_brut == Decimal("3000")
        assert janvier.cumuls.debut == date(2025, 1, 1)
        assert orchestrateur.suivi.est_coherent()

        # Conges payes
        assert decembre.conges.acquis == Decimal("5")
        assert decembre.conges.restants == Decimal("3")

        # Plafond de l'annee fiscale et cotisation activee
        assert janvier.plafond == Decimal("3925")
        assert janvier.verrouille is True
        assert janvier.total_patronal == decembre.total_patronal + Decimal("60")

    def test_catalogue_externe_csv(self, tmp_path):
        orchestrateur = OrchestrateurPaie(_config(tmp_path))

        chemin = orchestrateur.traiter_fichier(
            FIXTURES / "donnees_salarie.json",
            chemin_catalogue=FIXTURES / "catalogue.json",
            format_export="csv",
        )

        assert chemin.suffix == ".csv"
        decembre = orchestrateur.bulletins[1]
        assert [d.id for d in decembre.totaux.details] == [
            "maladie", "vieillesse_plafonnee", "csg_deductible",
        ]
        assert decembre.total_salarial == Decimal("411")
        assert decembre.nets.net_a_payer == Decimal("2589")

        rejets = orchestrateur.audit.lire_journal("catalogue_cotisation_rejetee")
        assert [r["details"]["cotisation"] for r in rejets] == ["taxe_erronee"]

    def test_journal_audit(self, tmp_path):
        orchestrateur = OrchestrateurPaie(_config(tmp_path))
        orchestrateur.traiter_fichier(FIXTURES / "donnees_salarie.json", format_export="xlsx")

        operations = [e["operation"] for e in orchestrateur.audit.lire_journal()]
        assert operations[0] == "demarrage_calcul"
        assert operations.count("calcul_bulletin") == 3
        assert operations[-1] == "export_livre_paie"

    def test_donnees_invalides(self, tmp_path):
        chemin = tmp_path / "vide.json"
        chemin.write_text(json.dumps({"salarie": "X"}), encoding="utf-8")
        orchestrateur = OrchestrateurPaie(_config(tmp_path))

        with pytest.raises(DonneesPaieError):
            orchestrateur.traiter_fichier(chemin)

        dernier = orchestrateur.audit.lire_journal()[-1]
        assert dernier["resultat"] == "echec"

    def test_cotisation_inconnue_dans_donnees(self, tmp_path):
        chemin = tmp_path / "donnees.json"
        chemin.write_text(json.dumps({
            "bulletins": [{"mois": "2024-03", "salaire_brut": 2000, "activer": {"inexistante": True}}],
        }), encoding="utf-8")
        orchestrateur = OrchestrateurPaie(_config(tmp_path))

        with pytest.raises(DonneesPaieError):
            orchestrateur.traiter_fichier(chemin)


class TestCli:
    """Tests du point d'entree en ligne de commande."""

    def test_export_csv(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("MOTEUR_PAIE_DATA_DIR", str(tmp_path / "data"))

        code = main([
            str(FIXTURES / "donnees_salarie.json"),
            "--format", "csv",
            "--output", str(tmp_path / "sortie"),
        ])

        assert code == 0
        assert (tmp_path / "sortie" / "livre_paie_donnees_salarie.csv").exists()
        assert "1 818,37 EUR" in capsys.readouterr().out

    def test_fichier_introuvable(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MOTEUR_PAIE_DATA_DIR", str(tmp_path / "data"))
        assert main([str(tmp_path / "absent.json")]) == 1

    def test_donnees_invalides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MOTEUR_PAIE_DATA_DIR", str(tmp_path / "data"))
        chemin = tmp_path / "invalide.json"
        chemin.write_text("[]", encoding="utf-8")
        assert main([str(chemin)]) == 1
