"""
Accès réseau du terminal.
Toute panne de requête (connexion refusée, DNS, timeout, boucle de redirections,
corps illisible) devient une ConnectivityError ;
une réponse HTTP reçue, même en erreur (4xx/5xx), est retournée telle quelle.
"""

import logging
from typing import Optional

import httpx

from app.exceptions import ConnectivityError
from app.offline.config import offline_settings

logger = logging.getLogger(__name__)


class NetworkFetcher:
    """Envoie les requêtes via un httpx.Client ; le corps de la réponse est entièrement lu."""

    def __init__(self, client: Optional[httpx.Client] = None, timeout: Optional[float] = None):
        self._client = client or httpx.Client(
            timeout=timeout or offline_settings.FETCH_TIMEOUT,
            follow_redirects=True,
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        return self.fetch(request)

    def fetch(self, request: httpx.Request) -> httpx.Response:
        try:
            response = self._client.send(request)
            response.read()
        except httpx.RequestError as exc:
            logger.debug("Réseau indisponible pour %s %s : %s", request.method, request.url, exc)
            raise ConnectivityError(f"Réseau indisponible : {exc}") from exc
        return response

    def close(self) -> None:
        self._client.close()


def build_request(method: str, url: str, origin: Optional[str] = None, **kwargs) -> httpx.Request:
    """Construit une requête ; les URLs relatives ('/index.html') sont résolues sur l'origine de l'app."""
    absolute = httpx.URL(origin or offline_settings.ORIGIN).join(url)
    return httpx.Request(method, absolute, **kwargs)
