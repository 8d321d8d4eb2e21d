# =============================================================================
# 🗄️ database.py
# -----------------------------------------------------------------------------
# SQLAlchemy-Datenbankkonfiguration für QR Studio
# Standard: SQLite-Datei, per .env (QR_DATABASE_URL) überschreibbar
# =============================================================================

import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from dotenv import load_dotenv

# 🔹 .env laden (z. B. aus .env-Datei im Projektverzeichnis)
load_dotenv()

SQLALCHEMY_DATABASE_URL = os.getenv("QR_DATABASE_URL", "sqlite:///./qr_studio.db")

# 🔹 SQLite braucht check_same_thread=False für FastAPI-Threads
connect_args = {"check_same_thread": False} if SQLALCHEMY_DATABASE_URL.startswith("sqlite") else {}

# 🔹 Engine erstellen
# pool_pre_ping = erkennt automatisch unterbrochene Verbindungen
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args=connect_args,
    pool_pre_ping=True,
)

# 🔹 SessionFactory – erzeugt Session für jede Anfrage
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

# 🔹 Basisklasse für alle SQLAlchemy-Modelle
Base = declarative_base()


# 🔹 Dependency für FastAPI
def get_db():
    """
    Erstellt eine neue Datenbank-Session pro Anfrage und schließt sie automatisch.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
