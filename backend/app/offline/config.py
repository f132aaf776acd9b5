"""
Configuration du cache offline embarqué sur le terminal.
Variables d'environnement préfixées par SAMPLING_OFFLINE_ (ex. SAMPLING_OFFLINE_CACHE_VERSION=2).
"""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class OfflineSettings(BaseSettings):
    # Origine de l'application (résolution des URLs relatives du manifeste)
    ORIGIN: str = "http://localhost:3000"

    # Génération du cache : à incrémenter à chaque déploiement
    CACHE_PREFIX: str = "sampling"
    CACHE_VERSION: int = 1

    # Préfixe des requêtes API (jamais mises en cache)
    API_PREFIX: str = "/api/"

    # Document servi hors-ligne quand la ressource demandée n'est pas en cache
    OFFLINE_DOCUMENT: str = "/index.html"

    # Ressources préchargées à l'installation
    PRECACHE_URLS: List[str] = [
        "/",
        "/index.html",
        "/manifest.json",
        "https://unpkg.com/@zxing/library@latest/umd/index.js",  # décodeur code-barres
    ]

    FETCH_TIMEOUT: float = 10.0

    model_config = SettingsConfigDict(
        env_prefix="SAMPLING_OFFLINE_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @property
    def cache_name(self) -> str:
        """Nom du cache de la génération courante, ex. sampling-v1."""
        return f"{self.CACHE_PREFIX}-v{self.CACHE_VERSION}"


offline_settings = OfflineSettings()
