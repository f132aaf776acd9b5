"""
Stockage local des réponses HTTP sur le terminal, organisé en caches nommés
(un cache par génération : sampling-v1, sampling-v2...).

Toutes les lectures/écritures passent par un verrou unique au stockage : une
purge de générations ne peut pas être observée à moitié par une lecture concurrente.
Les réponses sont stockées et restituées sous forme de copies (corps déjà lu),
l'appelant peut donc consommer librement la réponse qu'il a reçue.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Union

import httpx

from app.exceptions import ConnectivityError

logger = logging.getLogger(__name__)

RequestLike = Union[httpx.Request, httpx.URL, str]

# En-têtes décrivant l'encodage de transfert du corps d'origine : invalides sur une copie décodée
_TRANSFER_HEADERS = {"content-encoding", "content-length", "transfer-encoding"}


class CacheError(Exception):
    """Écriture refusée par le stockage local."""


class CacheQuotaExceeded(CacheError):
    """Le stockage local a atteint son nombre maximal d'entrées."""


class CacheAddError(CacheError):
    """Au moins une ressource n'a pas pu être préchargée ; rien n'a été écrit."""

    def __init__(self, failed_urls: List[str]):
        super().__init__(f"{len(failed_urls)} ressource(s) en échec : {', '.join(failed_urls)}")
        self.failed_urls = failed_urls


def request_key(request: RequestLike) -> str:
    """Identité d'une requête dans le cache : son URL absolue, sans fragment."""
    url = request.url if isinstance(request, httpx.Request) else httpx.URL(str(request))
    return str(url).split("#", 1)[0]


def clone_response(response: httpx.Response) -> httpx.Response:
    """Copie indépendante d'une réponse (statut, en-têtes, corps)."""
    headers = [
        (key, value)
        for key, value in response.headers.multi_items()
        if key.lower() not in _TRANSFER_HEADERS
    ]
    return httpx.Response(
        status_code=response.status_code,
        headers=headers,
        content=response.read(),
    )


class Cache:
    """Un cache nommé : association URL → réponse."""

    def __init__(self, name: str, storage: "CacheStorage"):
        self.name = name
        self._storage = storage
        self._entries: Dict[str, httpx.Response] = {}

    def match(self, request: RequestLike) -> Optional[httpx.Response]:
        with self._storage.lock:
            entry = self._entries.get(request_key(request))
        return clone_response(entry) if entry is not None else None

    def put(self, request: RequestLike, response: httpx.Response) -> None:
        """Stocke une copie de la réponse. Lève CacheError si l'écriture est refusée."""
        if isinstance(request, httpx.Request) and request.method != "GET":
            raise CacheError(f"Seules les requêtes GET sont mises en cache ({request.method}).")
        copy = clone_response(response)
        key = request_key(request)
        with self._storage.lock:
            self._storage.reserve(1 if key not in self._entries else 0)
            self._entries[key] = copy

    def add_all(
        self,
        urls: Iterable[str],
        fetch: Callable[[httpx.Request], httpx.Response],
    ) -> None:
        """
        Télécharge puis stocke toutes les ressources, de façon atomique : si une seule
        échoue (réseau ou statut ≠ 200), rien n'est écrit et CacheAddError liste les échecs.
        """
        fetched: Dict[str, httpx.Response] = {}
        failed: List[str] = []
        for url in urls:
            try:
                response = fetch(httpx.Request("GET", url))
            except ConnectivityError as exc:
                logger.debug("Préchargement %s impossible : %s", url, exc)
                failed.append(url)
                continue
            if response.status_code != 200:
                logger.debug("Préchargement %s refusé : HTTP %d", url, response.status_code)
                failed.append(url)
                continue
            fetched[request_key(url)] = clone_response(response)

        if failed:
            raise CacheAddError(failed)

        with self._storage.lock:
            self._storage.reserve(len([k for k in fetched if k not in self._entries]))
            self._entries.update(fetched)

    def delete(self, request: RequestLike) -> bool:
        with self._storage.lock:
            return self._entries.pop(request_key(request), None) is not None

    def keys(self) -> List[str]:
        with self._storage.lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._storage.lock:
            return len(self._entries)


class CacheStorage:
    """
    Ensemble des caches du terminal.
    max_entries limite le nombre total de réponses stockées (quota du terminal).
    """

    def __init__(self, max_entries: Optional[int] = None):
        self.lock = threading.RLock()
        self.max_entries = max_entries
        self._caches: Dict[str, Cache] = {}

    def open(self, name: str) -> Cache:
        """Retourne le cache `name`, créé vide s'il n'existe pas encore."""
        with self.lock:
            cache = self._caches.get(name)
            if cache is None:
                cache = Cache(name, self)
                self._caches[name] = cache
            return cache

    def has(self, name: str) -> bool:
        with self.lock:
            return name in self._caches

    def keys(self) -> List[str]:
        with self.lock:
            return list(self._caches)

    def delete(self, name: str) -> bool:
        """Supprime le cache `name` ; ses entrées deviennent inaccessibles, même via un handle existant."""
        with self.lock:
            cache = self._caches.pop(name, None)
            if cache is None:
                return False
            cache._entries.clear()
            return True

    @contextmanager
    def exclusive(self) -> Iterator["CacheStorage"]:
        """Bloque toute lecture/écriture concurrente le temps d'une opération composée."""
        with self.lock:
            yield self

    def reserve(self, count: int) -> None:
        """Vérifie que `count` nouvelles entrées tiennent dans le quota (verrou déjà pris)."""
        if self.max_entries is None or count == 0:
            return
        used = sum(len(cache._entries) for cache in self._caches.values())
        if used + count > self.max_entries:
            raise CacheQuotaExceeded(
                f"Quota du cache atteint ({used}/{self.max_entries} entrées)."
            )
