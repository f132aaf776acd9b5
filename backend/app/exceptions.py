"""
Erreurs métier de l'application.

Côté serveur, chaque erreur est traduite en réponse JSON {"error": ...} par les
handlers déclarés dans app.main :
- AuthError         → 401
- ValidationError   → 400 (détectée avant toute écriture)
- PersistenceError  → 500 (transaction entièrement annulée)

ConnectivityError ne sort jamais de la couche offline : elle est convertie en
réponse dégradée par l'arbitre réseau.
"""


class SamplingError(Exception):
    """Erreur de base de l'application."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthError(SamplingError):
    """Clé API absente ou invalide."""

    status_code = 401


class ValidationError(SamplingError, ValueError):
    """Batch rejeté avant écriture (champs obligatoires manquants)."""

    status_code = 400


class InvalidBatchError(ValidationError):
    """Le corps de la requête n'est pas un tableau non vide de relevés."""


class PersistenceError(SamplingError):
    """Échec de la transaction d'ingestion : rien n'a été écrit."""

    status_code = 500


class ConnectivityError(SamplingError):
    """Réseau indisponible côté terminal (connexion refusée, timeout, DNS...)."""

    status_code = 503
