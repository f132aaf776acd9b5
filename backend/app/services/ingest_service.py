"""
Service d'ingestion des relevés offline → serveur.

Stratégie : tout ou rien par batch
- Chaque relevé est validé dans l'ordre d'envoi ; le premier relevé invalide
  rejette le batch entier (aucune écriture, aucun détail par relevé).
- Tous les relevés sont insérés dans UNE transaction ; au moindre échec SQL,
  rollback complet → le terminal peut rejouer le même batch sans effet partiel.
- server_ids est aligné sur l'ordre d'envoi (pas sur local_id, qui n'est pas unique) :
  un id par relevé, sans réordonnancement ni dédoublonnage.
"""

import logging
from typing import Any, List, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import InvalidBatchError, PersistenceError, ValidationError
from app.models.sample import Sample
from app.schemas.sample import BulkIngestResponse, SampleCreate
from app.services.scan_service import count_samples
from app.services.validation import missing_fields

logger = logging.getLogger(__name__)


def parse_batch(scans: Any, max_batch_size: Optional[int] = None) -> List[SampleCreate]:
    """
    Valide le corps brut de la requête et construit les relevés (valeurs par défaut appliquées).

    Lève InvalidBatchError si le corps n'est pas un tableau non vide (ou trop grand),
    ValidationError au premier relevé incomplet ou malformé.
    """
    if not isinstance(scans, (list, tuple)) or not scans:
        raise InvalidBatchError("Un tableau de relevés non vide est requis.")

    limit = max_batch_size or settings.BULK_MAX_BATCH_SIZE
    if len(scans) > limit:
        raise InvalidBatchError(f"Batch trop grand : maximum {limit} relevés par requête.")

    records: List[SampleCreate] = []
    for index, raw in enumerate(scans):
        missing = missing_fields(raw)
        if missing:
            logger.info("Batch rejeté : relevé #%d incomplet (%s)", index, ", ".join(missing))
            raise ValidationError("Champs obligatoires manquants.")
        try:
            records.append(SampleCreate.from_payload(raw))
        except PydanticValidationError as exc:
            logger.info("Batch rejeté : relevé #%d malformé (%s)", index, exc)
            raise ValidationError("Relevé malformé.") from exc
    return records


def _to_model(record: SampleCreate) -> Sample:
    return Sample(
        device_id=record.device_id,
        local_id=record.local_id,
        sample=record.sample,
        well_name=record.well_name,
        block=record.block,
        type=record.type,
        scanned_at=record.scanned_at_datetime,
        scanned_by=record.scanned_by,
        is_test=record.is_test,
    )


def ingest_batch(
    db: Session,
    scans: Any,
    max_batch_size: Optional[int] = None,
) -> BulkIngestResponse:
    """
    Insère un batch de relevés envoyé par un terminal.

    1. Valide tout le batch avant la moindre requête SQL
    2. Insère tous les relevés puis flush (les ids serveur sont attribués par la BDD)
    3. Commit unique ; rollback + PersistenceError en cas d'erreur SQL
    4. Relit le nombre total de relevés (hors test) après commit
    """
    records = parse_batch(scans, max_batch_size)
    samples = [_to_model(record) for record in records]

    try:
        db.add_all(samples)
        db.flush()
        # Lus avant commit : expire_on_commit rechargerait chaque objet
        server_ids = [sample.id for sample in samples]
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "Échec de l'ingestion de %d relevés, transaction annulée : %s",
            len(samples), exc, exc_info=True,
        )
        raise PersistenceError("Erreur interne du serveur.") from exc

    total_on_server = count_samples(db)

    logger.info(
        "Ingestion device=%s : %d relevés insérés, %d au total sur le serveur",
        ",".join(sorted({r.device_id for r in records})), len(server_ids), total_on_server,
    )

    return BulkIngestResponse(server_ids=server_ids, total_on_server=total_on_server)
