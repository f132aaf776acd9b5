"""
Router pour les relevés de prélèvement (synchronisation offline → serveur, lecture, export).
Tous les endpoints exigent le header x-api-key.
"""

from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.sample import BulkIngestResponse, SampleCountResponse, SampleListResponse
from app.security import require_api_key
from app.services import ingest_service, scan_service

router = APIRouter(
    prefix="/api/scans",
    tags=["Relevés"],
    dependencies=[Depends(require_api_key)],
)


@router.post(
    "/bulk",
    response_model=BulkIngestResponse,
    summary="Synchroniser un batch de relevés (offline → serveur)",
)
def ingest_scans(scans: Any = Body(default=None), db: Session = Depends(get_db)):
    """
    Reçoit un tableau de relevés générés hors-ligne et les insère en une transaction.

    Comportement :
    - Tout ou rien : un seul relevé incomplet → 400, rien n'est écrit
    - Erreur BDD → 500, rollback complet (le batch peut être rejoué tel quel)
    - server_ids[i] est l'id serveur du i-ème relevé envoyé
    - total_on_server permet au terminal de détecter une désynchronisation

    Le corps est reçu brut (Any) pour que les erreurs de forme renvoient 400 et non 422.
    """
    return ingest_service.ingest_batch(db, scans)


@router.get("/count", response_model=SampleCountResponse, summary="Nombre de relevés sur le serveur")
def count_scans(db: Session = Depends(get_db)):
    """Retourne le nombre total de relevés réels (hors test)."""
    return SampleCountResponse(total_on_server=scan_service.count_samples(db))


@router.get("", response_model=SampleListResponse, summary="Lister les relevés")
def list_scans(
    device_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = Query(default=scan_service.DEFAULT_LIST_LIMIT, ge=1),
    db: Session = Depends(get_db),
):
    """Relevés hors test, filtrables par appareil et période, du plus récent au plus ancien."""
    return scan_service.list_samples(db, device_id, start_date, end_date, limit)


@router.get("/export/csv", summary="Exporter les relevés en CSV")
def export_scans_csv(db: Session = Depends(get_db)):
    """Exporte tous les relevés hors test en CSV (UTF-8)."""
    csv_content = scan_service.export_samples_csv(db)

    return StreamingResponse(
        iter([csv_content]),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": "attachment; filename=scans.csv"},
    )
