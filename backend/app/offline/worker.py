"""
Point d'entrée du cache offline côté terminal : reçoit les événements du cycle de vie
(install, activate, fetch, message) et les délègue au gestionnaire de générations
ou à l'arbitre réseau.
"""

import logging
from typing import Any, List, Mapping, Optional

import httpx

from app.offline.arbiter import Fetch, ResourceArbiter, network_only
from app.offline.cache_store import CacheStorage
from app.offline.config import OfflineSettings, offline_settings
from app.offline.generations import CacheGenerationManager, GenerationState
from app.offline.network import NetworkFetcher

logger = logging.getLogger(__name__)

SKIP_WAITING = "SKIP_WAITING"


class OfflineWorker:
    def __init__(
        self,
        storage: Optional[CacheStorage] = None,
        fetch: Optional[Fetch] = None,
        settings: OfflineSettings = offline_settings,
        skip_waiting_on_install: bool = True,
    ):
        self.storage = storage or CacheStorage()
        self.fetch = fetch or NetworkFetcher(timeout=settings.FETCH_TIMEOUT)
        self.settings = settings
        self.skip_waiting_on_install = skip_waiting_on_install
        self.generations = CacheGenerationManager(self.storage, self.fetch, settings)
        self.arbiter = ResourceArbiter(self.storage, self.fetch, settings)

    @property
    def state(self) -> GenerationState:
        return self.generations.state

    def install(self) -> List[str]:
        urls = self.generations.install()
        if self.skip_waiting_on_install:
            self.generations.skip_waiting()
        return urls

    def activate(self) -> List[str]:
        return self.generations.activate()

    def start(self) -> None:
        """Installe la génération courante puis l'active si l'attente est levée."""
        self.install()
        if self.generations.skip_waiting_requested:
            self.activate()

    def fetch_event(self, request: httpx.Request) -> httpx.Response:
        """Requête émise par l'application ; avant activation, elle part directement au réseau."""
        if not self.generations.controlling:
            return network_only(request, self.fetch)
        return self.arbiter.handle(request)

    def message(self, data: Any) -> None:
        """Message de l'application ; {"type": "SKIP_WAITING"} active la génération en attente."""
        if not isinstance(data, Mapping) or data.get("type") != SKIP_WAITING:
            return
        logger.info("SKIP_WAITING reçu (état %s)", self.state.value)
        self.generations.skip_waiting()
        if self.state is GenerationState.INSTALLED:
            self.activate()
