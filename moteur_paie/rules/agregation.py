"""Agregation du bulletin de paie : brut, cotisations et nets.

Toute modification d'un bulletin (element de salaire, taux, activation d'une
cotisation, statut cadre, brut saisi, taux de prelevement a la source)
relance la meme sequence :

    brut -> cotisations -> nets

de sorte qu'un bulletin au repos n'expose jamais de totaux perimes.

Le brut vient soit des elements de salaire, soit d'un montant saisi
directement, jamais des deux : ajouter un element a un bulletin saisi
convertit le montant saisi en ligne "Salaire de base".

Net avant impot et net social valent brut - cotisations salariales. Le net
imposable y reintegre la CSG non deductible et la CRDS ; le prelevement a la
source, calcule sur le net imposable, ne diminue que le net a payer. Avec un
taux nul, les trois nets sont egaux.
"""

import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from moteur_paie.config.catalogue import get_cotisations_defaut
from moteur_paie.config.constants import (
    COTISATIONS_CADRE,
    COTISATIONS_NON_DEDUCTIBLES,
    DUREE_LEGALE_HEBDO,
)
from moteur_paie.config.settings import get_plafond_mensuel
from moteur_paie.core.exceptions import BulletinVerrouilleError
from moteur_paie.models.bulletin import (
    CongesPayes,
    Cumuls,
    DefinitionCotisation,
    LigneSalaire,
    NetsSalaire,
    TotauxCotisations,
)
from moteur_paie.rules.calcul_cotisations import calculer_totaux, cout_employeur
from moteur_paie.utils.number_utils import arrondir, to_decimal

logger = logging.getLogger("moteur_paie.bulletin")

_CHAMPS_LIGNE = {"libelle", "base", "taux", "montant", "est_gain", "desactivee"}
LIBELLE_SALAIRE_BASE = "Salaire de base"
CENT = Decimal("100")


def calculer_salaire_brut(lignes: Iterable[LigneSalaire]) -> Decimal:
    """Somme des gains actifs. Les retenues et lignes desactivees valent zero."""
    return sum(
        (to_decimal(l.montant) for l in lignes if l.est_gain and not l.desactivee),
        Decimal("0"),
    )


def calculer_salaire_prorata(
    salaire_temps_plein: Decimal,
    heures_contrat: Decimal,
    heures_temps_plein: Decimal = DUREE_LEGALE_HEBDO,
) -> Decimal:
    """Salaire d'un temps partiel : temps plein x heures du contrat / heures de reference."""
    heures_temps_plein = to_decimal(heures_temps_plein)
    if heures_temps_plein <= 0:
        raise ValueError(f"Duree de reference invalide : {heures_temps_plein}")
    return to_decimal(salaire_temps_plein) * to_decimal(heures_contrat) / heures_temps_plein


def part_non_deductible(totaux: TotauxCotisations) -> Decimal:
    """Part salariale de CSG non deductible et de CRDS."""
    return sum(
        (d.montant_salarial for d in totaux.details if d.id in COTISATIONS_NON_DEDUCTIBLES),
        Decimal("0"),
    )


def deriver_nets(
    salaire_brut: Decimal,
    total_salarial: Decimal,
    non_deductible: Decimal = Decimal("0"),
    taux_pas: Decimal = Decimal("0"),
) -> NetsSalaire:
    """Derive les nets du bulletin a partir du brut et des cotisations salariales."""
    net = to_decimal(salaire_brut) - to_decimal(total_salarial)
    net_imposable = net + to_decimal(non_deductible)
    taux_pas = to_decimal(taux_pas)
    montant_pas = net_imposable * taux_pas / CENT
    return NetsSalaire(
        net_avant_impot=net,
        net_a_payer=net - montant_pas,
        net_social=net,
        net_imposable=net_imposable,
        taux_pas=taux_pas,
        montant_pas=montant_pas,
    )


def _valider_taux_pas(taux) -> Decimal:
    taux = to_decimal(taux)
    if not Decimal("0") <= taux <= CENT:
        raise ValueError(f"Taux de prelevement a la source hors de [0, 100] : {taux}")
    return taux


def basculer_cotisations_cadre(
    cotisations: Iterable[DefinitionCotisation], est_cadre: bool,
) -> list[DefinitionCotisation]:
    """Active ou desactive les cotisations reservees aux cadres.

    Retourne de nouvelles definitions ; seules les cotisations cadre
    (APEC, tranche 2 AGIRC-ARRCO et CEG) voient leur drapeau change.
    """
    resultat = []
    for c in cotisations:
        copie = c.copie()
        if copie.id in COTISATIONS_CADRE:
            copie.obligatoire = est_cadre
        resultat.append(copie)
    return resultat


class BulletinPaie:
    """Bulletin de paie d'une periode, recalcule a chaque modification."""

    def __init__(
        self,
        periode_debut: date,
        periode_fin: date,
        date_paiement: Optional[date] = None,
        *,
        annee_fiscale: Optional[int] = None,
        lignes: Optional[Iterable[LigneSalaire]] = None,
        salaire_brut: Optional[Decimal] = None,
        cotisations: Optional[Iterable[DefinitionCotisation]] = None,
        est_cadre: bool = False,
        plafond: Optional[Decimal] = None,
        plafonds: Optional[dict[int, Decimal]] = None,
        salarie: str = "",
        taux_pas: Decimal = Decimal("0"),
    ):
        self.periode_debut = periode_debut
        self.periode_fin = periode_fin
        self.date_paiement = date_paiement
        # Une annee lue d'un fichier peut arriver en texte ("2025")
        self.annee_fiscale = int(annee_fiscale) if annee_fiscale is not None else periode_debut.year
        self.salarie = salarie
        self.plafond = (
            to_decimal(plafond) if plafond is not None
            else get_plafond_mensuel(self.annee_fiscale, plafonds)
        )

        self.lignes: list[LigneSalaire] = [replace(l) for l in (lignes or [])]
        self._brut_saisi = to_decimal(salaire_brut) if salaire_brut is not None else None
        if self.lignes and self._brut_saisi is not None:
            logger.debug("Brut saisi %s ignore : elements de salaire fournis", self._brut_saisi)
            self._brut_saisi = None
        self.taux_pas = _valider_taux_pas(taux_pas)

        source = cotisations if cotisations is not None else get_cotisations_defaut()
        self.est_cadre = est_cadre
        self.cotisations = basculer_cotisations_cadre(source, est_cadre)

        self.verrouille = False
        self.cumuls: Optional[Cumuls] = None
        self.conges: Optional[CongesPayes] = None

        self._salaire_brut = Decimal("0")
        self._totaux = TotauxCotisations()
        self._nets = deriver_nets(Decimal("0"), Decimal("0"))
        self.recalculer()

    # --- Resultats ---

    @property
    def salaire_brut(self) -> Decimal:
        return self._salaire_brut

    @property
    def totaux(self) -> TotauxCotisations:
        return self._totaux

    @property
    def total_salarial(self) -> Decimal:
        return self._totaux.total_salarial

    @property
    def total_patronal(self) -> Decimal:
        return self._totaux.total_patronal

    @property
    def nets(self) -> NetsSalaire:
        return self._nets

    @property
    def cout_employeur(self) -> Decimal:
        return cout_employeur(self._salaire_brut, self._totaux.total_patronal)

    def recalculer(self) -> None:
        """Recalcule brut, cotisations puis nets, dans cet ordre."""
        if self.lignes:
            brut = calculer_salaire_brut(self.lignes)
        else:
            brut = self._brut_saisi if self._brut_saisi is not None else Decimal("0")
        totaux = calculer_totaux(self.cotisations, brut, self.plafond)
        nets = deriver_nets(
            brut, totaux.total_salarial, part_non_deductible(totaux), self.taux_pas,
        )

        # Publication groupee : aucun etat intermediaire observable
        self._salaire_brut, self._totaux, self._nets = brut, totaux, nets
        logger.debug(
            "Bulletin %s-%s recalcule : brut=%s net=%s",
            self.periode_debut, self.periode_fin, brut, nets.net_a_payer,
        )

    # --- Modifications ---

    def _verifier_modifiable(self) -> None:
        if self.verrouille:
            raise BulletinVerrouilleError(
                f"Bulletin du {self.periode_debut} au {self.periode_fin} verrouille"
            )

    def _cotisation(self, identifiant: str) -> DefinitionCotisation:
        for c in self.cotisations:
            if c.id == identifiant:
                return c
        raise KeyError(f"Cotisation absente du bulletin : {identifiant}")

    def ajouter_ligne(self, ligne: LigneSalaire) -> None:
        """Ajoute un element de salaire.

        Sur un bulletin a brut saisi, le montant saisi devient d'abord une
        ligne "Salaire de base" : l'ajout complete le brut au lieu de le remplacer.
        """
        self._verifier_modifiable()
        if not self.lignes and self._brut_saisi is not None:
            self.lignes.append(LigneSalaire(LIBELLE_SALAIRE_BASE, self._brut_saisi))
            self._brut_saisi = None
        self.lignes.append(replace(ligne))
        self.recalculer()

    def modifier_ligne(self, index: int, **changements) -> LigneSalaire:
        """Modifie un element de salaire.

        Si la base ou le taux change sans montant explicite, le montant est
        recalcule (base x taux) quand les deux sont renseignes. Un montant
        fourni explicitement est toujours conserve tel quel.
        """
        self._verifier_modifiable()
        inconnus = set(changements) - _CHAMPS_LIGNE
        if inconnus:
            raise TypeError(f"Champs inconnus : {', '.join(sorted(inconnus))}")

        ligne = self.lignes[index]
        for champ, valeur in changements.items():
            if champ in ("base", "taux", "montant") and valeur is not None:
                valeur = to_decimal(valeur)
            setattr(ligne, champ, valeur)

        if "montant" not in changements and ({"base", "taux"} & set(changements)):
            calcule = ligne.montant_calcule
            if calcule is not None:
                ligne.montant = calcule

        self.recalculer()
        return ligne

    def retirer_ligne(self, index: int) -> LigneSalaire:
        self._verifier_modifiable()
        ligne = self.lignes.pop(index)
        self.recalculer()
        return ligne

    def definir_salaire_brut(self, montant: Decimal) -> None:
        """Saisit directement le brut ; les elements de salaire sont abandonnes."""
        self._verifier_modifiable()
        if self.lignes:
            logger.debug("Brut saisi : %d elements de salaire abandonnes", len(self.lignes))
        self.lignes = []
        self._brut_saisi = to_decimal(montant)
        self.recalculer()

    def activer_cotisation(self, identifiant: str, active: bool = True) -> None:
        self._verifier_modifiable()
        self._cotisation(identifiant).obligatoire = active
        self.recalculer()

    def modifier_taux(
        self,
        identifiant: str,
        taux_salarial: Optional[Decimal] = None,
        taux_patronal: Optional[Decimal] = None,
    ) -> None:
        self._verifier_modifiable()
        cotisation = self._cotisation(identifiant)
        if taux_salarial is not None:
            cotisation.taux_salarial = to_decimal(taux_salarial)
        if taux_patronal is not None:
            cotisation.taux_patronal = to_decimal(taux_patronal)
        self.recalculer()

    def definir_taux_pas(self, taux: Decimal) -> None:
        """Taux de prelevement a la source, en pourcentage du net imposable."""
        self._verifier_modifiable()
        self.taux_pas = _valider_taux_pas(taux)
        self.recalculer()

    def definir_statut_cadre(self, est_cadre: bool) -> None:
        self._verifier_modifiable()
        self.est_cadre = est_cadre
        self.cotisations = basculer_cotisations_cadre(self.cotisations, est_cadre)
        self.recalculer()

    def verrouiller(self) -> None:
        """Fige le bulletin : il n'est plus lu que pour les cumuls et l'export."""
        self.recalculer()
        self.verrouille = True
        logger.info("Bulletin du %s au %s verrouille", self.periode_debut, self.periode_fin)

    # --- Export ---

    def to_dict(self) -> dict:
        return {
            "salarie": self.salarie,
            "periode_debut": self.periode_debut.isoformat(),
            "periode_fin": self.periode_fin.isoformat(),
            "date_paiement": self.date_paiement.isoformat() if self.date_paiement else None,
            "annee_fiscale": self.annee_fiscale,
            "est_cadre": self.est_cadre,
            "plafond_ss": str(self.plafond),
            "verrouille": self.verrouille,
            "lignes": [l.to_dict() for l in self.lignes],
            "salaire_brut": str(arrondir(self.salaire_brut)),
            "cotisations": self.totaux.to_dict(),
            "nets": self.nets.to_dict(),
            "cout_employeur": str(arrondir(self.cout_employeur)),
            "cumuls": self.cumuls.to_dict() if self.cumuls else None,
            "conges_payes": self.conges.to_dict() if self.conges else None,
        }
