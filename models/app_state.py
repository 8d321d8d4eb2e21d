# models/app_state.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column
from database import Base


class AppState(Base):
    """
    Einfacher Key-Value-Speicher:
    - ein namensraum-basierter Schlüssel (z. B. "qr-code-history")
    - Wert als JSON-Text, wird bei jeder Änderung komplett ersetzt
    """
    __tablename__ = "app_state"

    key: Mapped[str] = mapped_column(String(120), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="[]")

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
