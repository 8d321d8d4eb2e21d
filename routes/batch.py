from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, List

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import Response
from pydantic import Field

from routes.utils import ExportFormat, StyledRequest, get_renderer, request_style
from utils.qr_batch import BatchItem, completed_items, export_zip, generate_batch, parse_batch_text
from utils.qr_config import StyleConfiguration
from utils.qr_generator import to_data_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/batch", tags=["Batch"])

ALLOWED_UPLOADS = {".txt", ".csv"}
MAX_UPLOAD_BYTES = 1024 * 1024


class BatchIn(StyledRequest):
    text: str = Field(..., description="Ein Inhalt pro Zeile")
    archive: bool = Field(default=False, description="ZIP statt JSON zurückgeben")


def _serialize(item: BatchItem, fmt: str) -> dict[str, Any]:
    return {
        "id": item.id,
        "content": item.content,
        "filename": f"{item.filename}.{fmt}",
        "status": item.status,
        "error": item.error,
        "url": to_data_url(item.image, fmt) if item.image else None,
    }


def _run(items: List[BatchItem], style: StyleConfiguration, fmt: str, archive: bool, renderer):
    if not items:
        raise HTTPException(status_code=400, detail="No content lines found")

    generate_batch(items, style, fmt, renderer=renderer)
    if archive:
        if not completed_items(items):
            raise HTTPException(status_code=502, detail="No QR code could be generated")
        filename = f"qr-codes-{int(time.time() * 1000)}.zip"
        return Response(
            content=export_zip(items, fmt),
            media_type="application/zip",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    done = len(completed_items(items))
    return {
        "items": [_serialize(i, fmt) for i in items],
        "count": len(items),
        "completed": done,
        "failed": len(items) - done,
    }


@router.post("")
def batch_generate(body: BatchIn, renderer=Depends(get_renderer)):
    style = request_style(body.settings)
    return _run(parse_batch_text(body.text), style, body.format, body.archive, renderer)


@router.post("/upload")
async def batch_upload(
    file: UploadFile = File(...),
    format: ExportFormat = Form("png"),
    archive: bool = Form(False),
    settings: str = Form("{}"),
    renderer=Depends(get_renderer),
):
    """Import aus .txt/.csv – eine Zeile = ein QR-Code."""
    suffix = Path(file.filename or "").suffix.lower()
    if suffix not in ALLOWED_UPLOADS:
        raise HTTPException(status_code=400, detail="Only .txt and .csv files are supported")

    raw = await file.read()
    if len(raw) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File too large")
    try:
        text = raw.decode("utf-8-sig")
        updates = json.loads(settings or "{}")
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise HTTPException(status_code=422, detail=f"Unreadable upload: {e}")
    if not isinstance(updates, dict):
        raise HTTPException(status_code=422, detail="settings must be a JSON object")

    logger.info(f"📥 Batch-Upload {file.filename} ({len(raw)} Bytes)")
    style = request_style(updates)
    return _run(parse_batch_text(text), style, format, archive, renderer)
