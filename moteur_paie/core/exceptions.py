"""Exceptions personnalisees pour Moteur Paie."""


class MoteurPaieError(Exception):
    """Exception de base."""


class ConfigError(MoteurPaieError):
    """Erreur de configuration."""


class CatalogueError(ConfigError):
    """Catalogue de cotisations illisible ou mal forme."""


class BulletinVerrouilleError(MoteurPaieError):
    """Modification d'un bulletin deja verrouille."""


class ExportError(MoteurPaieError):
    """Erreur lors de l'export du livre de paie."""


class CumulsError(MoteurPaieError):
    """Sequence de bulletins incoherente pour le calcul des cumuls."""


class DonneesPaieError(MoteurPaieError):
    """Fichier de donnees de paie illisible ou incomplet."""
