"""Setup pour Moteur Paie."""

from setuptools import setup, find_packages

setup(
    name="moteur_paie",
    version="1.0.0",
    description="Moteur de calcul des cotisations sociales et des nets de paie",
    author="AJ",
    python_requires=">=3.10",
    packages=find_packages(include=["moteur_paie", "moteur_paie.*"]),
    entry_points={
        "console_scripts": [
            "moteur-paie=moteur_paie.main:main",
        ],
    },
    install_requires=[
        "pydantic>=2.0",
        "openpyxl>=3.1.0",
        "python-dateutil>=2.8.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
        ],
    },
)
