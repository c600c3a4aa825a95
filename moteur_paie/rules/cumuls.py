"""Cumuls annuels (brut, net) et conges payes d'un salarie.

Deux chemins de calcul :
- `cumuler` : ajout incremental a partir des cumuls du bulletin precedent ;
- `recalculer_cumuls` : pli complet depuis le premier bulletin, qui fait foi.

`cumuler` et `recalculer_cumuls` n'appliquent pas la frontiere d'annee
fiscale : l'appelant partitionne d'abord ses bulletins par annee
(`partitionner_par_annee`). `SuiviCumuls` le fait pour un salarie et traite
l'ajout incremental comme un cache du pli, invalide des qu'un bulletin passe
est remplace.
"""

import logging
from decimal import Decimal
from typing import Iterable, Optional

from moteur_paie.config.constants import CONGES_ACQUIS_PAR_MOIS, MOIS_DEBUT_PERIODE_CONGES
from moteur_paie.core.exceptions import CumulsError
from moteur_paie.models.bulletin import CongesPayes, Cumuls
from moteur_paie.rules.agregation import BulletinPaie
from moteur_paie.utils.date_utils import debut_annee
from moteur_paie.utils.number_utils import to_decimal

logger = logging.getLogger("moteur_paie.cumuls")


def _cumuls_de(bulletin: BulletinPaie) -> tuple[Decimal, Decimal]:
    if bulletin.cumuls is not None:
        return bulletin.cumuls.cumul_brut, bulletin.cumuls.cumul_net
    return bulletin.salaire_brut, bulletin.nets.net_a_payer


def cumuler(precedent: Optional[BulletinPaie], courant: BulletinPaie) -> Cumuls:
    """Cumuls du bulletin courant a partir de ceux du bulletin precedent."""
    brut = courant.salaire_brut
    net = courant.nets.net_a_payer
    if precedent is not None:
        cumul_brut, cumul_net = _cumuls_de(precedent)
        brut += cumul_brut
        net += cumul_net
    return Cumuls(
        cumul_brut=brut,
        cumul_net=net,
        debut=debut_annee(courant.annee_fiscale),
        fin=courant.periode_fin,
    )


def recalculer_cumuls(periodes: Iterable[BulletinPaie]) -> list[Cumuls]:
    """Recalcule les cumuls de toute une sequence (du plus ancien au plus recent)."""
    resultats = []
    precedent = None
    for bulletin in periodes:
        # Repartir de zero : les cumuls deja presents ne font pas foi
        bulletin.cumuls = None
        bulletin.cumuls = cumuler(precedent, bulletin)
        resultats.append(bulletin.cumuls)
        precedent = bulletin
    return resultats


def partitionner_par_annee(periodes: Iterable[BulletinPaie]) -> dict[int, list[BulletinPaie]]:
    """Trie les bulletins par date de debut et les regroupe par annee fiscale."""
    groupes: dict[int, list[BulletinPaie]] = {}
    for bulletin in sorted(periodes, key=lambda b: b.periode_debut):
        groupes.setdefault(bulletin.annee_fiscale, []).append(bulletin)
    return groupes


def recalculer_cumuls_par_annee(periodes: Iterable[BulletinPaie]) -> dict[int, list[Cumuls]]:
    return {
        annee: recalculer_cumuls(bulletins)
        for annee, bulletins in partitionner_par_annee(periodes).items()
    }


def calculer_conges(
    precedent: Optional[BulletinPaie],
    courant: BulletinPaie,
    jours_pris: Decimal = Decimal("0"),
) -> CongesPayes:
    """Conges payes : 2,5 jours acquis par mois, compteur remis a zero au 1er juin."""
    jours_pris = to_decimal(jours_pris)
    debut = courant.periode_debut
    nouvelle_periode = debut.month == MOIS_DEBUT_PERIODE_CONGES and debut.day == 1

    if precedent is None or precedent.conges is None or nouvelle_periode:
        base = CongesPayes()
    else:
        base = precedent.conges

    return CongesPayes(
        acquis=base.acquis + CONGES_ACQUIS_PAR_MOIS,
        pris=base.pris + jours_pris,
        restants=max(Decimal("0"), base.restants + CONGES_ACQUIS_PAR_MOIS - jours_pris),
    )


class SuiviCumuls:
    """Registre chronologique des bulletins d'un salarie."""

    def __init__(self, salarie: str = ""):
        self.salarie = salarie
        self._bulletins: list[BulletinPaie] = []
        self._jours_pris: list[Decimal] = []

    @property
    def bulletins(self) -> tuple[BulletinPaie, ...]:
        return tuple(self._bulletins)

    def _precedent(self, index: int) -> Optional[BulletinPaie]:
        """Bulletin precedent de la meme annee fiscale, s'il existe."""
        if index == 0:
            return None
        precedent = self._bulletins[index - 1]
        if precedent.annee_fiscale != self._bulletins[index].annee_fiscale:
            return None
        return precedent

    def _calculer(self, index: int) -> None:
        bulletin = self._bulletins[index]
        precedent = self._precedent(index)
        bulletin.cumuls = cumuler(precedent, bulletin)
        # Les conges suivent leur propre periode de reference (1er juin)
        precedent_conges = self._bulletins[index - 1] if index > 0 else None
        bulletin.conges = calculer_conges(precedent_conges, bulletin, self._jours_pris[index])

    def ajouter(self, bulletin: BulletinPaie, jours_pris: Decimal = Decimal("0")) -> Cumuls:
        """Ajoute le bulletin suivant et calcule ses cumuls par increment."""
        if self._bulletins and bulletin.periode_debut <= self._bulletins[-1].periode_debut:
            raise CumulsError(
                f"Bulletin du {bulletin.periode_debut} anterieur au dernier bulletin suivi "
                f"({self._bulletins[-1].periode_debut})"
            )
        self._bulletins.append(bulletin)
        self._jours_pris.append(to_decimal(jours_pris))
        self._calculer(len(self._bulletins) - 1)
        return bulletin.cumuls

    def remplacer(self, index: int, bulletin: BulletinPaie) -> None:
        """Remplace un bulletin passe et propage la correction aux suivants."""
        if bulletin.periode_debut != self._bulletins[index].periode_debut:
            raise CumulsError("Le bulletin de remplacement doit couvrir la meme periode")
        self._bulletins[index] = bulletin
        self.invalider(index)

    def invalider(self, depuis: int = 0) -> None:
        """Recalcule les cumuls a partir d'un bulletin donne."""
        for i in range(depuis, len(self._bulletins)):
            self._calculer(i)
        logger.debug(
            "Cumuls de %s recalcules depuis le bulletin %d", self.salarie or "?", depuis,
        )

    def est_coherent(self) -> bool:
        """Verifie que les cumuls en cache correspondent au pli complet."""
        attendu_brut = attendu_net = Decimal("0")
        annee = None
        for bulletin in self._bulletins:
            if bulletin.annee_fiscale != annee:
                annee = bulletin.annee_fiscale
                attendu_brut = attendu_net = Decimal("0")
            attendu_brut += bulletin.salaire_brut
            attendu_net += bulletin.nets.net_a_payer
            if bulletin.cumuls is None:
                return False
            if (bulletin.cumuls.cumul_brut, bulletin.cumuls.cumul_net) != (attendu_brut, attendu_net):
                return False
        return True

    def cumuls_courants(self) -> Optional[Cumuls]:
        if not self._bulletins:
            return None
        return self._bulletins[-1].cumuls
