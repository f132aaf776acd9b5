"""
Service de lecture des relevés : compteur, liste filtrée et export CSV.
Les relevés de test (is_test = true) sont exclus de toutes les lectures.
"""

import io
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.exceptions import PersistenceError
from app.models.sample import Sample
from app.schemas.sample import SampleListResponse, SampleResponse

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 1000

CSV_HEADER = "ID,Device,Sample,Well,Block,Type,Time (UTC),Operator\n"

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def count_samples(db: Session) -> int:
    """
    Nombre total de relevés réels (hors test) en base.

    Toujours relu en BDD, jamais mis en cache : après un batch, la valeur reflète
    l'état commité, y compris les écritures concurrentes d'autres terminaux.
    """
    try:
        return db.execute(
            select(func.count()).select_from(Sample).where(Sample.is_test.is_(False))
        ).scalar_one()
    except SQLAlchemyError as exc:
        logger.error("Impossible de compter les relevés : %s", exc, exc_info=True)
        raise PersistenceError("Erreur interne du serveur.") from exc


def list_samples(
    db: Session,
    device_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = DEFAULT_LIST_LIMIT,
) -> SampleListResponse:
    """Relevés hors test, filtrés (appareil, période) et triés du plus récent au plus ancien."""
    query = select(Sample).where(Sample.is_test.is_(False))

    if device_id:
        query = query.where(Sample.device_id == device_id)
    if start_date:
        query = query.where(Sample.scanned_at >= start_date)
    if end_date:
        query = query.where(Sample.scanned_at <= end_date)

    samples = db.execute(
        query.order_by(Sample.scanned_at.desc()).limit(limit)
    ).scalars().all()

    return SampleListResponse(
        data=[SampleResponse.model_validate(s) for s in samples],
        count=len(samples),
    )


def _format_timestamp(value: Optional[datetime]) -> str:
    """
    Format ISO 8601 UTC à la milliseconde : 2023-11-14T22:13:20.000Z
    Un relevé sans horodatage est exporté à l'epoch (1970-01-01T00:00:00.000Z).
    """
    if value is None:
        value = EPOCH
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def export_samples_csv(db: Session) -> str:
    """
    Génère le CSV (UTF-8) de tous les relevés hors test, du plus récent au plus ancien.

    Chaque champ texte est entre guillemets doubles. Les guillemets contenus dans
    les valeurs ne sont PAS échappés : le format est figé pour les outils qui
    consomment déjà cet export.
    """
    samples = db.execute(
        select(Sample)
        .where(Sample.is_test.is_(False))
        .order_by(Sample.scanned_at.desc())
    ).scalars().all()

    output = io.StringIO()
    output.write(CSV_HEADER)
    for s in samples:
        output.write(
            f'{s.id},"{s.device_id}","{s.sample}","{s.well_name}","{s.block}",'
            f'"{s.type}","{_format_timestamp(s.scanned_at)}","{s.scanned_by}"\n'
        )

    logger.info("Export CSV : %d relevés", len(samples))
    return output.getvalue()
