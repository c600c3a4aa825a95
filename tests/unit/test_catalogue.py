"""Tests du catalogue de cotisations et de son chargement."""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import json
from decimal import Decimal

import pytest

from moteur_paie.config.catalogue import (
    DefinitionInvalide,
    DefinitionValide,
    charger_catalogue,
    charger_catalogue_json,
    charger_definition,
    get_cotisation_defaut,
    get_cotisations_defaut,
    get_par_categorie,
)
from moteur_paie.config.constants import (
    COTISATIONS_CADRE,
    CategorieCotisation,
    TypeAssiette,
)
from moteur_paie.core.exceptions import CatalogueError


class TestCatalogueDefaut:
    """Tests du catalogue reglementaire par defaut."""

    def test_nombre_et_ordre(self):
        cotisations = get_cotisations_defaut()
        assert len(cotisations) == 20
        assert cotisations[0].id == "maladie"
        assert cotisations[-1].id == "forfait_social"

    def test_identifiants_uniques(self):
        ids = [c.id for c in get_cotisations_defaut()]
        assert len(ids) == len(set(ids))

    def test_cotisations_cadre_presentes(self):
        ids = {c.id for c in get_cotisations_defaut()}
        assert COTISATIONS_CADRE <= ids

    def test_taux_positifs(self):
        for c in get_cotisations_defaut():
            assert c.taux_salarial >= 0
            assert c.taux_patronal >= 0

    def test_vieillesse_plafonnee(self):
        c = get_cotisation_defaut("vieillesse_plafonnee")
        assert c.taux_salarial == Decimal("6.9")
        assert c.taux_patronal == Decimal("8.55")
        assert c.type_assiette == TypeAssiette.PLAFONNEE

    def test_tranche_2_agirc_arrco(self):
        c = get_cotisation_defaut("agirc_arrco_t2")
        assert c.type_assiette == TypeAssiette.TRANCHE_B
        assert c.taux_salarial == Decimal("8.64")

    def test_cotisation_inexistante(self):
        assert get_cotisation_defaut("inexistante") is None

    def test_copie_independante(self):
        """Modifier une copie ne contamine pas les appels suivants."""
        premiere = get_cotisations_defaut()
        premiere[0].taux_patronal = Decimal("99")
        premiere[0].obligatoire = False
        seconde = get_cotisations_defaut()
        assert seconde[0].taux_patronal == Decimal("7.3")
        assert seconde[0].obligatoire is True


class TestParCategorie:
    """Tests du filtrage par categorie."""

    def test_csg_crds(self):
        ids = [c.id for c in get_par_categorie(CategorieCotisation.CSG_CRDS)]
        assert ids == ["csg_deductible", "csg_non_deductible", "crds"]

    def test_valeur_texte(self):
        assert len(get_par_categorie("unemployment")) == 2

    def test_libelle_historique(self):
        ids = [c.id for c in get_par_categorie("retraite")]
        assert "apec" in ids
        assert len(ids) == 5

    def test_categorie_inconnue(self):
        assert get_par_categorie("inexistante") == []


class TestChargementDefinition:
    """Tests de la validation a la frontiere de chargement."""

    def test_entree_historique_camel_case(self):
        r = charger_definition({
            "id": "vieillesse_plafonnee",
            "name": "Assurance Vieillesse plafonnee",
            "category": "securite_sociale",
            "employeeRate": 6.9,
            "employerRate": 8.55,
            "baseType": "plafond",
            "isRequired": True,
        })
        assert isinstance(r, DefinitionValide)
        d = r.definition
        assert d.categorie == CategorieCotisation.SECURITE_SOCIALE
        assert d.type_assiette == TypeAssiette.PLAFONNEE
        assert d.taux_salarial == Decimal("6.9")
        assert d.description == ""

    def test_entree_francaise(self):
        r = charger_definition({
            "id": "agirc_arrco_t2",
            "nom": "Tranche 2",
            "categorie": "retirement",
            "taux_salarial": "8.64",
            "taux_patronal": "12.95",
            "type_assiette": "tier_b",
            "obligatoire": False,
        })
        assert isinstance(r, DefinitionValide)
        assert r.definition.type_assiette == TypeAssiette.TRANCHE_B
        assert r.definition.obligatoire is False

    def test_alias_tranche_b(self):
        r = charger_definition({
            "id": "t2", "nom": "T2", "categorie": "retirement", "baseType": "trancheB",
        })
        assert r.definition.type_assiette == TypeAssiette.TRANCHE_B

    def test_taux_negatif_rejete(self):
        r = charger_definition({
            "id": "x", "nom": "X", "categorie": "other", "taux_salarial": -1,
        })
        assert isinstance(r, DefinitionInvalide)
        assert r.identifiant == "x"
        assert r.raison

    def test_taux_superieur_100_rejete(self):
        r = charger_definition({
            "id": "x", "nom": "X", "categorie": "other", "taux_patronal": 150,
        })
        assert isinstance(r, DefinitionInvalide)

    def test_type_assiette_inconnu_rejete(self):
        r = charger_definition({
            "id": "x", "nom": "X", "categorie": "other", "type_assiette": "tranche_c",
        })
        assert isinstance(r, DefinitionInvalide)

    def test_categorie_inconnue_rejetee(self):
        r = charger_definition({"id": "x", "nom": "X", "categorie": "fiscal"})
        assert isinstance(r, DefinitionInvalide)

    def test_entree_non_structuree(self):
        r = charger_definition("maladie")
        assert isinstance(r, DefinitionInvalide)
        assert r.identifiant == "?"


class TestChargementCatalogue:
    """Tests du chargement d'un catalogue complet."""

    ENTREES = [
        {"id": "maladie", "nom": "Maladie", "categorie": "social_security",
         "taux_patronal": "7.3"},
        {"id": "bad", "nom": "Mauvaise", "categorie": "other", "taux_salarial": "-2"},
        {"id": "crds", "nom": "CRDS", "categorie": "csg_crds", "taux_salarial": "0.5"},
        {"id": "maladie", "nom": "Doublon", "categorie": "social_security"},
    ]

    def test_valides_dans_l_ordre(self):
        definitions, invalides = charger_catalogue(self.ENTREES)
        assert [d.id for d in definitions] == ["maladie", "crds"]
        assert [i.identifiant for i in invalides] == ["bad", "maladie"]

    def test_doublon_signale(self):
        _, invalides = charger_catalogue(self.ENTREES)
        assert invalides[-1].raison == "identifiant en double"

    def test_rejet_journalise(self, caplog):
        with caplog.at_level("WARNING", logger="moteur_paie.catalogue"):
            charger_catalogue(self.ENTREES)
        assert "bad" in caplog.text

    def test_fichier_liste(self, tmp_path):
        chemin = tmp_path / "catalogue.json"
        chemin.write_text(json.dumps(self.ENTREES), encoding="utf-8")
        definitions, invalides = charger_catalogue_json(chemin)
        assert len(definitions) == 2
        assert len(invalides) == 2

    def test_fichier_objet(self, tmp_path):
        chemin = tmp_path / "catalogue.json"
        chemin.write_text(json.dumps({"cotisations": self.ENTREES[:1]}), encoding="utf-8")
        definitions, _ = charger_catalogue_json(chemin)
        assert definitions[0].id == "maladie"

    def test_fichier_json_invalide(self, tmp_path):
        chemin = tmp_path / "catalogue.json"
        chemin.write_text("{pas du json", encoding="utf-8")
        with pytest.raises(CatalogueError):
            charger_catalogue_json(chemin)

    def test_fichier_sans_liste(self, tmp_path):
        chemin = tmp_path / "catalogue.json"
        chemin.write_text(json.dumps({"autre": 1}), encoding="utf-8")
        with pytest.raises(CatalogueError):
            charger_catalogue_json(chemin)

    def test_fichier_absent(self, tmp_path):
        with pytest.raises(CatalogueError):
            charger_catalogue_json(tmp_path / "absent.json")
