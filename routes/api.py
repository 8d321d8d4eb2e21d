from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field

from routes.utils import (
    PayloadIn,
    StyledRequest,
    get_history_store,
    get_renderer,
    image_response,
    request_style,
)
from utils.qr_config import DEFAULT_STYLE, merge_style, style_to_dict
from utils.qr_engine import event_timezone
from utils.qr_generator import QRRenderError, to_data_url
from utils.qr_history import QRHistoryStore
from utils.qr_payload import check_payload, payload_from_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["QR API"])


class RenderIn(StyledRequest):
    data: PayloadIn
    name: Optional[str] = Field(default=None, max_length=120)
    category: Optional[str] = Field(default=None, max_length=60)


def _status_dict(status) -> dict[str, Any]:
    return {
        "type": status.kind.value,
        "content": status.content,
        "ready": status.ready,
        "issues": list(status.issues),
        "warnings": list(status.warnings),
    }


@router.post("/encode")
def encode(body: PayloadIn) -> dict[str, Any]:
    payload = payload_from_dict(body.model_dump())
    return _status_dict(check_payload(payload, event_timezone()))


@router.post("/render")
def render(
    body: RenderIn,
    store: QRHistoryStore = Depends(get_history_store),
    renderer=Depends(get_renderer),
):
    payload = payload_from_dict(body.data.model_dump())
    status = check_payload(payload, event_timezone())
    if not status.ready:
        raise HTTPException(status_code=422, detail={"issues": list(status.issues)})

    style = request_style(body.settings)
    try:
        image = renderer(status.content, style, body.format)
    except QRRenderError as e:
        logger.error(f"❌ Rendering fehlgeschlagen ({payload.kind.value}): {e}")
        raise HTTPException(status_code=502, detail=str(e))

    record = store.record(
        payload,
        style,
        to_data_url(image, body.format),
        name=body.name,
        category=body.category,
    )
    return image_response(image, body.format, headers={"X-History-Id": record.id})


@router.post("/style")
def preview_style(body: StyledRequest) -> dict[str, Any]:
    """Normalisierte Stil-Einstellungen (ohne Rendering)."""
    return style_to_dict(merge_style(DEFAULT_STYLE, body.settings))
