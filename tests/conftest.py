import sys, os, pytest, pytest_asyncio, httpx
from httpx import ASGITransport

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# ⚙️ Test-DB im Speicher statt qr_studio.db
os.environ.setdefault("QR_DATABASE_URL", "sqlite://")

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import get_db
from main import app
from models.app_state import AppState
from routes.utils import get_renderer


def fake_renderer(content, style, fmt="png"):
    """Schneller Ersatz für render_qr in Routen-Tests."""
    return f"{fmt}:{content}".encode("utf-8")


@pytest.fixture
def session_local():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    AppState.__table__.create(bind=engine, checkfirst=True)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


def _override_db(session_local):
    def override_get_db():
        db = session_local()
        try:
            yield db
        finally:
            db.close()

    return override_get_db


@pytest.fixture
def api_client(session_local):
    app.dependency_overrides[get_db] = _override_db(session_local)
    app.dependency_overrides[get_renderer] = lambda: fake_renderer

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_renderer, None)


@pytest_asyncio.fixture
async def client(session_local):
    """Async-Client über ASGITransport (echter Renderer)."""
    app.dependency_overrides[get_db] = _override_db(session_local)
    transport = ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.pop(get_db, None)
