# =============================================================================
# 📦 utils/qr_batch.py
# -----------------------------------------------------------------------------
# Stapelverarbeitung: viele Inhalte → viele QR-Codes
# - Import aus Text (eine Zeile = ein Inhalt, Leerzeilen werden übersprungen)
# - streng sequentiell: pending → generating → completed | error
# - ein fehlerhafter Eintrag stoppt den Rest NICHT
# =============================================================================

from __future__ import annotations

import logging
import time
import zipfile
from dataclasses import dataclass
from io import BytesIO
from typing import Callable, List, Optional

from utils.qr_config import StyleConfiguration
from utils.qr_generator import QRRenderError, render_qr

logger = logging.getLogger(__name__)

PENDING = "pending"
GENERATING = "generating"
COMPLETED = "completed"
ERROR = "error"

Renderer = Callable[[str, StyleConfiguration, str], bytes]


@dataclass
class BatchItem:
    id: str
    content: str
    filename: str
    status: str = PENDING
    image: Optional[bytes] = None
    error: Optional[str] = None


def parse_batch_text(text: str) -> List[BatchItem]:
    """Eine Zeile pro Inhalt, getrimmt; Leerzeilen werden übersprungen."""
    stamp = int(time.time() * 1000)
    lines = [line.strip() for line in (text or "").splitlines() if line.strip()]
    return [
        BatchItem(id=f"{stamp}-{index}", content=line, filename=f"qr-{index + 1}")
        for index, line in enumerate(lines)
    ]


def generate_batch(
    items: List[BatchItem],
    style: StyleConfiguration,
    fmt: str = "png",
    renderer: Renderer = render_qr,
    on_update: Optional[Callable[[BatchItem], None]] = None,
) -> List[BatchItem]:
    """
    Rendert die Einträge nacheinander. Jeder Eintrag wird erst auf
    "generating" gesetzt, dann auf "completed" oder "error".
    """

    def _notify(item: BatchItem) -> None:
        if on_update is not None:
            on_update(item)

    def _fail(item: BatchItem, error: Exception) -> None:
        item.image = None
        item.status = ERROR
        item.error = str(error) or type(error).__name__

    for item in items:
        item.status = GENERATING
        item.error = None
        _notify(item)
        try:
            item.image = renderer(item.content, style, fmt)
            item.status = COMPLETED
        except QRRenderError as e:
            _fail(item, e)
            logger.warning(f"⚠️ Batch-Eintrag {item.filename} fehlgeschlagen: {e}")
        except Exception as e:
            # nur dieser Eintrag scheitert, die Warteschlange läuft weiter
            _fail(item, e)
            logger.exception(f"❌ Unerwarteter Fehler bei Batch-Eintrag {item.filename}")
        _notify(item)

    done = sum(1 for i in items if i.status == COMPLETED)
    logger.info(f"✅ Batch fertig: {done}/{len(items)} erfolgreich")
    return items


def remove_item(items: List[BatchItem], item_id: str) -> List[BatchItem]:
    return [i for i in items if i.id != item_id]


def completed_items(items: List[BatchItem]) -> List[BatchItem]:
    return [i for i in items if i.status == COMPLETED and i.image]


def export_zip(items: List[BatchItem], fmt: str = "png") -> bytes:
    """Alle fertigen Einträge als ZIP (qr-1.png, qr-2.png, ...)."""
    buffer = BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for item in completed_items(items):
            archive.writestr(f"{item.filename}.{fmt}", item.image)
    return buffer.getvalue()
