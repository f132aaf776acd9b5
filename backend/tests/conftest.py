"""
Configuration partagée pour tous les tests.
Override la dépendance get_db pour éviter toute connexion réelle à PostgreSQL :
- `client`        : session MagicMock (tests de routage, services patchés)
- `sqlite_client` : vraie session SQLAlchemy sur SQLite en mémoire (tests transactionnels)
"""

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from unittest.mock import MagicMock

from app.config import settings
from app.database import Base, get_db
from app.main import app
from app.offline.config import OfflineSettings
from app.offline.network import NetworkFetcher


@pytest.fixture
def client():
    """Client HTTP de test avec la BDD mockée."""
    mock_db = MagicMock()
    app.dependency_overrides[get_db] = lambda: mock_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"x-api-key": settings.API_KEY}


@pytest.fixture
def session_factory():
    """Base SQLite en mémoire partagée par toutes les sessions du test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def sqlite_client(session_factory):
    """Client HTTP de test branché sur la base SQLite en mémoire."""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


class FakeNetwork:
    """
    Réseau simulé pour le cache offline (httpx.MockTransport).
    routes : URL absolue → (statut, corps). online=False simule une coupure réseau.
    loop_urls : redirection vers elles-mêmes ; bad_gzip_urls : corps gzip illisible.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.online = True
        self.down_urls = set()
        self.loop_urls = set()
        self.bad_gzip_urls = set()
        self.calls = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.calls.append((request.method, url))
        if not self.online or url in self.down_urls:
            raise httpx.ConnectError("Network is unreachable", request=request)
        if url in self.loop_urls:
            return httpx.Response(302, headers={"Location": url})
        if url in self.bad_gzip_urls:
            return httpx.Response(200, content=b"pas du gzip", headers={"Content-Encoding": "gzip"})
        status, body = self.routes.get(url, (404, b"not found"))
        return httpx.Response(status, content=body)

    def fetcher(self) -> NetworkFetcher:
        return NetworkFetcher(client=httpx.Client(
            transport=httpx.MockTransport(self.handler),
            follow_redirects=True,
        ))


ORIGIN = "http://app.test"


@pytest.fixture
def offline_settings():
    return OfflineSettings(
        ORIGIN=ORIGIN,
        CACHE_VERSION=2,
        PRECACHE_URLS=["/", "/index.html", "/manifest.json", "https://cdn.test/zxing.js"],
    )


@pytest.fixture
def network():
    return FakeNetwork({
        f"{ORIGIN}/": (200, b"<html>accueil</html>"),
        f"{ORIGIN}/index.html": (200, b"<html>index</html>"),
        f"{ORIGIN}/manifest.json": (200, b'{"name": "Sampling"}'),
        f"{ORIGIN}/app.js": (200, b"console.log('app')"),
        "https://cdn.test/zxing.js": (200, b"/* zxing */"),
        f"{ORIGIN}/api/scans/count": (200, b'{"total_on_server": 3}'),
    })
