from __future__ import annotations

import logging

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from models.app_state import AppState

logger = logging.getLogger(__name__)


def ensure_app_state_table(engine: Engine) -> None:
    """Erstellt die Key-Value-Tabelle für den Verlauf idempotent."""
    try:
        AppState.__table__.create(bind=engine, checkfirst=True)
        logger.info("✅ app_state-Tabelle geprüft/ergänzt.")
    except SQLAlchemyError as exc:
        logger.warning(f"⚠️ Konnte app_state-Tabelle nicht automatisch erstellen: {exc}")
