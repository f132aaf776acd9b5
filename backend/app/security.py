"""
Authentification des terminaux par clé API partagée (header x-api-key).
"""

import secrets
from typing import Optional

from fastapi import Header

from app.config import settings
from app.exceptions import AuthError


def require_api_key(x_api_key: Optional[str] = Header(default=None)) -> None:
    """Dépendance FastAPI : lève AuthError (401) si la clé est absente ou incorrecte."""
    if not x_api_key or not secrets.compare_digest(x_api_key.encode(), settings.API_KEY.encode()):
        raise AuthError("Non autorisé : clé API invalide.")
