"""Moteur de calcul de paie : cotisations sociales, nets et cumuls."""

__version__ = "1.0.0"
