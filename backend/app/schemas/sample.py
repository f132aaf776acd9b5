"""
Schémas Pydantic pour les relevés de prélèvement.
Endpoints : POST /api/scans/bulk, GET /api/scans, GET /api/scans/count
"""

from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, field_validator

UNKNOWN = "unknown"

# Valeurs appliquées quand le terminal n'envoie rien, null, "" ou 0 pour le champ
RECORD_DEFAULTS = {
    "device_id": UNKNOWN,
    "local_id": None,
    "scanned_by": UNKNOWN,
    "is_test": False,
}


class SampleCreate(BaseModel):
    """Un relevé généré côté terminal en mode offline, prêt à être inséré."""

    device_id: str = UNKNOWN
    local_id: Optional[int] = None       # Jeton de corrélation du terminal (non unique)
    sample: str
    well_name: str
    block: str
    type: str
    scanned_at: Optional[int] = None     # Epoch en millisecondes (horloge du terminal)
    scanned_by: str = UNKNOWN
    is_test: bool = False                # Relevé de test : stocké mais jamais compté ni exporté

    @field_validator("device_id", "scanned_by", mode="before")
    @classmethod
    def numbers_as_text(cls, v: Any) -> Any:
        # Certains terminaux envoient un identifiant numérique : stocké tel quel en texte
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("sample", "well_name", "block", "type")
    @classmethod
    def strip_required(cls, v: str) -> str:
        return v.strip()

    @classmethod
    def from_payload(cls, raw: Mapping[str, Any]) -> "SampleCreate":
        """
        Construit un relevé à partir du JSON brut envoyé par le terminal.

        Toute valeur absente ou « fausse » (None, "", 0, False) des champs
        optionnels est remplacée par sa valeur par défaut (RECORD_DEFAULTS).
        Lève pydantic.ValidationError si un champ a un type incompatible.
        """
        data = dict(raw)
        for field, default in RECORD_DEFAULTS.items():
            if not data.get(field):
                data[field] = default
        return cls.model_validate(data)

    @property
    def scanned_at_datetime(self) -> Optional[datetime]:
        """Horodatage absolu (UTC) correspondant à scanned_at."""
        if self.scanned_at is None:
            return None
        return datetime.fromtimestamp(self.scanned_at / 1000.0, tz=timezone.utc)


class SampleResponse(BaseModel):
    id: int
    device_id: str
    local_id: Optional[int]
    sample: str
    well_name: str
    block: str
    type: str
    scanned_at: Optional[datetime]
    scanned_by: str
    is_test: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BulkIngestResponse(BaseModel):
    """
    Rapport d'ingestion retourné au terminal.
    server_ids[i] correspond au i-ème relevé envoyé : le terminal reconstitue
    lui-même la correspondance local_id → id serveur.
    """

    server_ids: List[int]
    total_on_server: int


class SampleCountResponse(BaseModel):
    total_on_server: int


class SampleListResponse(BaseModel):
    data: List[SampleResponse]
    count: int
