"""
Point d'entrée principal de l'API Sampling.
Démarrage : uvicorn app.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import make_url

import app.models  # noqa: F401 — enregistre tous les modèles dans Base.metadata avant les routers
from app.config import settings
from app.exceptions import SamplingError
from app.routers import scans

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Cycle de vie de l'application : configure les logs et trace la configuration active."""
    logging.basicConfig(level=settings.LOG_LEVEL)
    logger.info("API Sampling démarrée, ENV=%s", settings.ENV)
    logger.info("Base de données : %s", make_url(settings.DATABASE_URL).render_as_string(hide_password=True))
    yield
    logger.info("API Sampling arrêtée.")


app = FastAPI(
    title="Sampling API",
    description="API de collecte des relevés de prélèvement (offline-first)",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# Les terminaux chargent l'application depuis une autre origine que l'API.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "x-api-key"],
)


app.include_router(scans.router)


@app.exception_handler(SamplingError)
async def sampling_error_handler(request: Request, exc: SamplingError) -> JSONResponse:
    """Traduit les erreurs métier (auth, validation, persistance) en réponse {"error": ...}."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """JSON illisible ou paramètre de requête invalide → 400 plutôt que 422."""
    logger.info("Requête invalide %s %s : %s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"error": "Requête invalide."})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Intercepte toutes les exceptions non gérées pour garantir que la réponse 500
    passe bien par CORSMiddleware (qui injecte les headers CORS).
    Sans ce handler, ServerErrorMiddleware renvoie une réponse brute sans headers CORS,
    ce qui provoque une erreur "Failed to fetch" côté terminal.
    """
    logger.error("Exception non gérée : %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Erreur interne du serveur."},
    )


@app.get("/api/health", tags=["Santé"])
def health_check():
    """Vérifie que l'API est opérationnelle."""
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
