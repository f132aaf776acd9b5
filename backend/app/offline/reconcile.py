"""
Envoi d'un batch de relevés depuis le terminal et rapprochement des identifiants.

Le serveur retourne server_ids dans l'ordre d'envoi : le rapprochement local_id → id serveur
se fait uniquement par position. local_id n'étant pas unique, aucun dédoublonnage n'est fait.
"""

import logging
from typing import Any, List, Mapping, Optional, Sequence, Tuple

import httpx
from pydantic import BaseModel

from app.offline.config import offline_settings
from app.offline.network import build_request
from app.offline.worker import OfflineWorker

logger = logging.getLogger(__name__)

BULK_PATH = "/api/scans/bulk"


class SyncResult(BaseModel):
    """Résultat d'un envoi : paires (local_id, server_id) dans l'ordre du batch."""

    pairs: List[Tuple[Optional[int], int]]
    total_on_server: int


def reconcile_identities(
    batch: Sequence[Mapping[str, Any]],
    server_ids: Sequence[int],
) -> List[Tuple[Optional[int], int]]:
    """Associe chaque relevé envoyé à l'id serveur de même position."""
    if len(batch) != len(server_ids):
        raise ValueError(
            f"Réponse incohérente : {len(server_ids)} ids serveur pour {len(batch)} relevés."
        )
    return [(record.get("local_id"), server_id) for record, server_id in zip(batch, server_ids)]


def push_batch(
    worker: OfflineWorker,
    batch: Sequence[Mapping[str, Any]],
    api_key: str,
    origin: Optional[str] = None,
) -> Optional[SyncResult]:
    """
    Envoie le batch via l'arbitre réseau du terminal.

    Retourne None si le batch n'a pas été accepté (hors-ligne, 4xx, 5xx) : les relevés
    restent dans la file locale et le batch complet pourra être renvoyé tel quel.
    """
    request = build_request(
        "POST",
        BULK_PATH,
        origin or offline_settings.ORIGIN,
        json=list(batch),
        headers={"x-api-key": api_key},
    )
    response: httpx.Response = worker.fetch_event(request)

    if response.status_code != 200:
        logger.info("Batch de %d relevés non synchronisé : HTTP %d", len(batch), response.status_code)
        return None

    body = response.json()
    return SyncResult(
        pairs=reconcile_identities(batch, body["server_ids"]),
        total_on_server=body["total_on_server"],
    )
