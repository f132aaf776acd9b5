"""
Arbitrage cache / réseau des requêtes émises par l'application du terminal.

Deux classes de requêtes :
- API (chemin /api/...) : réseau uniquement. Hors-ligne → réponse 503 synthétique
  {"error": ..., "code": "NO_CONNECTIVITY"}. Jamais servie depuis le cache.
- STATIC (tout le reste) : cache d'abord. Absente du cache → réseau, puis copie
  dans le cache de la génération courante si le statut est 200.
  Hors-ligne → document offline (/index.html) s'il est en cache, sinon 503 minimal.

Quelle que soit la panne, l'appelant reçoit toujours une réponse.
"""

import enum
import logging
from typing import Callable

import httpx

from app.exceptions import ConnectivityError
from app.offline.cache_store import Cache, CacheError, CacheStorage, RequestLike
from app.offline.config import OfflineSettings, offline_settings

logger = logging.getLogger(__name__)

Fetch = Callable[[httpx.Request], httpx.Response]

NO_CONNECTIVITY = "NO_CONNECTIVITY"


class RequestClass(str, enum.Enum):
    API = "API"
    STATIC = "STATIC"


def classify(request: httpx.Request, api_prefix: str = "/api/") -> RequestClass:
    """Détermine la stratégie d'une requête d'après le chemin de son URL."""
    if request.url.path.startswith(api_prefix):
        return RequestClass.API
    return RequestClass.STATIC


def is_cacheable(response: httpx.Response) -> bool:
    return response.status_code == 200


def connectivity_error_response(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        503,
        json={"error": "Pas de connexion au serveur.", "code": NO_CONNECTIVITY},
        request=request,
    )


def offline_unavailable_response(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        503,
        text="Application indisponible (hors-ligne).",
        headers={"Content-Type": "text/plain; charset=utf-8"},
        request=request,
    )


def network_only(request: httpx.Request, fetch: Fetch) -> httpx.Response:
    """Stratégie API : réseau, ou réponse 503 synthétique si le réseau est absent."""
    try:
        return fetch(request)
    except ConnectivityError as exc:
        logger.info("Hors-ligne : %s %s → 503 (%s)", request.method, request.url.path, exc)
        return connectivity_error_response(request)


def cache_first(
    request: httpx.Request,
    cache: Cache,
    fetch: Fetch,
    offline_document: RequestLike,
) -> httpx.Response:
    """Stratégie STATIC : cache de la génération courante, puis réseau, puis document offline."""
    use_cache = request.method == "GET"

    if use_cache:
        cached = cache.match(request)
        if cached is not None:
            return cached

    try:
        response = fetch(request)
    except ConnectivityError:
        fallback = cache.match(offline_document)
        if fallback is not None:
            logger.info("Hors-ligne : %s servi à la place de %s", offline_document, request.url.path)
            return fallback
        return offline_unavailable_response(request)

    if use_cache and is_cacheable(response):
        try:
            cache.put(request, response)
        except CacheError as exc:
            # Écriture best-effort : la réponse réseau reste valide pour l'appelant
            logger.warning("Mise en cache de %s impossible : %s", request.url, exc)

    return response


class ResourceArbiter:
    """Applique la stratégie adaptée à chaque requête interceptée."""

    def __init__(
        self,
        storage: CacheStorage,
        fetch: Fetch,
        settings: OfflineSettings = offline_settings,
    ):
        self.storage = storage
        self.fetch = fetch
        self.settings = settings

    def handle(self, request: httpx.Request) -> httpx.Response:
        if classify(request, self.settings.API_PREFIX) is RequestClass.API:
            return network_only(request, self.fetch)

        cache = self.storage.open(self.settings.cache_name)
        return cache_first(
            request,
            cache,
            self.fetch,
            request.url.join(self.settings.OFFLINE_DOCUMENT),
        )
