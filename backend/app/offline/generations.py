"""
Cycle de vie des générations du cache offline.

- install  : précharge le manifeste dans le cache de la génération courante.
             Si certaines ressources échouent (ex. CDN du décodeur injoignable),
             le manifeste est relancé une fois sans elles plutôt que d'abandonner.
- activate : supprime tous les caches des générations précédentes, puis seulement
             commence à servir les requêtes interceptées.

Une génération ne change qu'à un nouveau déploiement (OfflineSettings.CACHE_VERSION).
"""

import enum
import logging
from typing import List, Optional, Sequence

from app.offline.arbiter import Fetch
from app.offline.cache_store import CacheAddError, CacheStorage
from app.offline.config import OfflineSettings, offline_settings
from app.offline.network import build_request

logger = logging.getLogger(__name__)


class GenerationState(str, enum.Enum):
    PARSED = "PARSED"
    INSTALLING = "INSTALLING"
    INSTALLED = "INSTALLED"        # installé, en attente d'activation
    ACTIVATING = "ACTIVATING"
    ACTIVATED = "ACTIVATED"        # sert les requêtes interceptées
    REDUNDANT = "REDUNDANT"        # installation échouée


class CacheInstallError(Exception):
    """Le manifeste n'a pas pu être préchargé, même après retrait des ressources en échec."""


class CacheGenerationManager:
    def __init__(
        self,
        storage: CacheStorage,
        fetch: Fetch,
        settings: OfflineSettings = offline_settings,
        precache_urls: Optional[Sequence[str]] = None,
    ):
        self.storage = storage
        self.fetch = fetch
        self.settings = settings
        self.cache_name = settings.cache_name
        self.precache_urls = list(settings.PRECACHE_URLS if precache_urls is None else precache_urls)
        self.state = GenerationState.PARSED
        self.skip_waiting_requested = False

    @property
    def controlling(self) -> bool:
        return self.state is GenerationState.ACTIVATED

    def _manifest(self) -> List[str]:
        return [str(build_request("GET", url, self.settings.ORIGIN).url) for url in self.precache_urls]

    def install(self) -> List[str]:
        """
        Précharge le manifeste et retourne les URLs effectivement mises en cache.
        Lève CacheInstallError (état REDUNDANT) si la seconde tentative échoue aussi.
        """
        self.state = GenerationState.INSTALLING
        cache = self.storage.open(self.cache_name)
        urls = self._manifest()

        try:
            cache.add_all(urls, self.fetch)
        except CacheAddError as exc:
            logger.warning("Préchargement incomplet de %s : %s", self.cache_name, exc)
            urls = [url for url in urls if url not in exc.failed_urls]
            try:
                cache.add_all(urls, self.fetch)
            except CacheAddError as retry_exc:
                self.state = GenerationState.REDUNDANT
                raise CacheInstallError(
                    f"Installation du cache {self.cache_name} impossible : {retry_exc}"
                ) from retry_exc

        self.state = GenerationState.INSTALLED
        logger.info("Cache %s installé : %d ressources préchargées", self.cache_name, len(urls))
        return urls

    def skip_waiting(self) -> None:
        """Demande l'activation sans attendre la fermeture des pages contrôlées par l'ancienne génération."""
        self.skip_waiting_requested = True

    def activate(self) -> List[str]:
        """Supprime les caches des autres générations ; retourne leurs noms."""
        if self.state not in (GenerationState.INSTALLED, GenerationState.ACTIVATED):
            raise RuntimeError(f"Activation impossible depuis l'état {self.state.value}.")

        self.state = GenerationState.ACTIVATING
        with self.storage.exclusive():
            stale = [name for name in self.storage.keys() if name != self.cache_name]
            for name in stale:
                self.storage.delete(name)
        self.state = GenerationState.ACTIVATED

        if stale:
            logger.info("Anciens caches supprimés : %s", ", ".join(stale))
        logger.info("Génération %s active.", self.cache_name)
        return stale
