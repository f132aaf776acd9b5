"""
Configuration de la connexion à la base de données PostgreSQL.
Utilise SQLAlchemy avec un pool de connexions partagé par les requêtes.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import sessionmaker

from app.config import settings

# pool_pre_ping : chaque connexion est testée avant d'être confiée à une requête
engine = create_engine(
    settings.DATABASE_URL,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_timeout=settings.DB_POOL_TIMEOUT,
    pool_pre_ping=True,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """
    Dépendance FastAPI — fournit une session BDD et la ferme après usage.

    La connexion n'est empruntée au pool qu'à la première requête SQL et lui est
    rendue par close(), quelle que soit l'issue (commit, rollback ou exception).
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
