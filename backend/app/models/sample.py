"""
Modèle SQLAlchemy pour les relevés de prélèvement scannés sur le terrain.

Architecture offline-first :
- local_id   : identifiant généré par le terminal, simple jeton de corrélation (non unique)
- scanned_at : horodatage du scan côté terminal (avant synchronisation)
- id         : identifiant serveur, attribué au commit du batch

Un relevé n'est jamais modifié ni supprimé après commit (append-only).
"""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, func

from app.database import Base


class Sample(Base):
    """Relevé d'échantillon : code-barres + puits + bloc + type."""
    __tablename__ = "samples"

    id = Column(Integer, primary_key=True, autoincrement=True)
    device_id = Column(String(255), nullable=False, default="unknown")
    local_id = Column(Integer, nullable=True)  # Corrélation client, pas de contrainte d'unicité

    sample = Column(String(255), nullable=False)
    well_name = Column(String(255), nullable=False)
    block = Column(String(255), nullable=False)
    type = Column(String(255), nullable=False)

    scanned_at = Column(DateTime(timezone=True), nullable=True, index=True)  # Horodatage terminal
    scanned_by = Column(String(255), nullable=False, default="unknown")
    is_test = Column(Boolean, nullable=False, default=False)  # Exclu des compteurs et exports

    created_at = Column(DateTime(timezone=True), server_default=func.now())
