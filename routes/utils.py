from __future__ import annotations

import time
from typing import Any, Dict, Literal, Optional

from fastapi import Depends, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from database import get_db
from utils.qr_config import DEFAULT_STYLE, StyleConfiguration, merge_style
from utils.qr_generator import EXPORT_FORMATS, render_qr
from utils.qr_history import QRHistoryStore, SQLHistoryRepository

PayloadType = Literal["url", "text", "email", "sms", "wifi", "phone", "vcard", "event", "location"]
ExportFormat = Literal["png", "svg", "jpeg", "webp"]


# --------------------------------------------------------------------------- #
# 📨 Gemeinsame Request-Modelle
# --------------------------------------------------------------------------- #
class PayloadIn(BaseModel):
    """{"type": "wifi", "wifi": {...}} bzw. {"type": "url", "content": "..."}"""

    model_config = ConfigDict(extra="allow")

    type: PayloadType = Field(default="url", description="Payload kind")
    content: str = Field(default="", description="Raw content for url/text")


class StyledRequest(BaseModel):
    settings: Dict[str, Any] = Field(default_factory=dict, description="Partial style settings")
    format: ExportFormat = Field(default="png")


# --------------------------------------------------------------------------- #
# 🔌 Dependencies
# --------------------------------------------------------------------------- #
def get_history_store(db: Session = Depends(get_db)) -> QRHistoryStore:
    return QRHistoryStore(SQLHistoryRepository(db))


def get_renderer():
    return render_qr


def request_style(settings: Dict[str, Any]) -> StyleConfiguration:
    """Stil aus Request-Daten. Logos nur als Data-URL, nie als Serverpfad."""
    style = merge_style(DEFAULT_STYLE, settings)
    if style.logo and not style.logo.image.startswith("data:"):
        raise HTTPException(status_code=422, detail="Logo image must be a data: URL")
    return style


# --------------------------------------------------------------------------- #
# 📤 Antworten
# --------------------------------------------------------------------------- #
def image_response(
    data: bytes,
    fmt: str,
    filename: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
) -> Response:
    """Bilddaten mit passendem Content-Type + Dateiname."""
    filename = filename or f"qr-code-{int(time.time() * 1000)}.{fmt}"
    all_headers = {"Content-Disposition": f'inline; filename="{filename}"'}
    all_headers.update(headers or {})
    return Response(content=data, media_type=EXPORT_FORMATS[fmt], headers=all_headers)
