"""
utils/qr_engine.py
────────────────────────────────────────────
Zentrale QR-Engine für QR Studio.
- hält den aktuellen Payload + Stil einer Bearbeitungssitzung
- berechnet nach JEDER Änderung Inhalt + Status neu (synchron)
- Render-Aufrufe bekommen eine laufende Nummer; nur die neueste
  Antwort wird übernommen und im Verlauf gespeichert
────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from datetime import tzinfo
from typing import Any, Callable, Mapping, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from utils.qr_config import (
    DEFAULT_STYLE,
    StyleConfiguration,
    add_gradient_stop,
    merge_style,
    remove_gradient_stop,
)
from utils.qr_generator import QRRenderError, render_qr, to_data_url
from utils.qr_history import HistoryRecord, InMemoryHistoryRepository, QRHistoryStore
from utils.qr_payload import (
    PayloadKind,
    PayloadStatus,
    QRPayload,
    UrlPayload,
    check_payload,
    empty_payload,
    with_fields,
)
from utils.qr_templates import QRTemplate, apply_template, get_template

logger = logging.getLogger(__name__)

Renderer = Callable[[str, StyleConfiguration, str], bytes]


def event_timezone() -> Optional[tzinfo]:
    """Zeitzone für Event-Daten aus QR_EVENT_TIMEZONE (sonst lokale Zone)."""
    name = os.getenv("QR_EVENT_TIMEZONE", "").strip()
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"⚠️ Unbekannte Zeitzone QR_EVENT_TIMEZONE={name!r}, nutze lokale Zone")
        return None


@dataclass(frozen=True)
class RenderRequest:
    sequence: int
    payload: QRPayload
    style: StyleConfiguration
    content: str
    ready: bool
    fmt: str = "png"


class QRSession:
    def __init__(
        self,
        history: Optional[QRHistoryStore] = None,
        renderer: Renderer = render_qr,
        tz: Optional[tzinfo] = None,
        payload: Optional[QRPayload] = None,
        style: Optional[StyleConfiguration] = None,
    ) -> None:
        self.history = history if history is not None else QRHistoryStore(InMemoryHistoryRepository())
        self.renderer = renderer
        self.tz = tz if tz is not None else event_timezone()
        self._payload: QRPayload = payload or UrlPayload("https://example.com")
        self._style = style or DEFAULT_STYLE
        self._status = check_payload(self._payload, self.tz)
        self._issued = 0
        self.last_image: Optional[bytes] = None
        self.last_format: Optional[str] = None

    # -----------------------------------------------------------------
    # 🔎 Zustand
    # -----------------------------------------------------------------
    @property
    def payload(self) -> QRPayload:
        return self._payload

    @property
    def style(self) -> StyleConfiguration:
        return self._style

    @property
    def status(self) -> PayloadStatus:
        return self._status

    @property
    def content(self) -> str:
        return self._status.content

    @property
    def ready(self) -> bool:
        return self._status.ready

    def _recompute(self) -> None:
        self._status = check_payload(self._payload, self.tz)

    # -----------------------------------------------------------------
    # ✏️ Payload-Änderungen
    # -----------------------------------------------------------------
    def set_payload(self, payload: QRPayload) -> PayloadStatus:
        self._payload = payload
        self._recompute()
        return self._status

    def set_kind(self, kind: Union[PayloadKind, str]) -> PayloadStatus:
        kind = PayloadKind(kind)
        if kind != self._payload.kind:
            self._payload = empty_payload(kind)
        self._recompute()
        return self._status

    def update_fields(self, **changes: Any) -> PayloadStatus:
        self._payload = with_fields(self._payload, **changes)
        self._recompute()
        return self._status

    # -----------------------------------------------------------------
    # 🎨 Stil-Änderungen
    # -----------------------------------------------------------------
    def update_style(self, updates: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> StyleConfiguration:
        self._style = merge_style(self._style, {**(updates or {}), **kwargs})
        return self._style

    def add_gradient_stop(self, offset: float = 0.5, color: Optional[str] = None) -> StyleConfiguration:
        self._style = add_gradient_stop(self._style, offset, color)
        return self._style

    def remove_gradient_stop(self, index: int) -> bool:
        """False, wenn das Entfernen abgelehnt wurde (< 2 Stopps)."""
        updated = remove_gradient_stop(self._style, index)
        changed = updated is not self._style
        self._style = updated
        return changed

    # -----------------------------------------------------------------
    # 🪄 Vorlagen & Verlauf
    # -----------------------------------------------------------------
    def apply_template(self, template: Union[QRTemplate, str]) -> PayloadStatus:
        if isinstance(template, str):
            found = get_template(template)
            if found is None:
                raise KeyError(f"Unknown template: {template}")
            template = found
        self._payload, self._style = apply_template(self._payload, self._style, template)
        self._recompute()
        return self._status

    def load_history_item(self, record: Union[HistoryRecord, str]) -> PayloadStatus:
        if isinstance(record, str):
            found = self.history.get(record)
            if found is None:
                raise KeyError(f"Unknown history record: {record}")
            record = found
        self._payload = record.payload
        self._style = record.style
        self._recompute()
        return self._status

    # -----------------------------------------------------------------
    # 🖼️ Rendern
    # -----------------------------------------------------------------
    def begin_render(self, fmt: str = "png") -> RenderRequest:
        """Neue Anfrage mit fortlaufender Nummer (Snapshot des Zustands)."""
        self._issued += 1
        return RenderRequest(
            sequence=self._issued,
            payload=self._payload,
            style=self._style,
            content=self._status.content,
            ready=self._status.ready,
            fmt=fmt,
        )

    def is_latest(self, request: RenderRequest) -> bool:
        return request.sequence == self._issued

    def complete_render(self, request: RenderRequest, image: bytes) -> bool:
        """
        Übernimmt ein Render-Ergebnis – nur wenn es zur neuesten Anfrage gehört.
        Veraltete Antworten werden verworfen.
        """
        if not self.is_latest(request):
            logger.debug(f"Veraltetes Render-Ergebnis #{request.sequence} verworfen (aktuell #{self._issued})")
            return False

        self.last_image = image
        self.last_format = request.fmt
        if image and request.ready and request.content.strip():
            self.history.record(request.payload, request.style, to_data_url(image, request.fmt))
        return True

    def render(self, fmt: str = "png") -> Optional[bytes]:
        """Synchron rendern. None, wenn der Payload nicht bereit ist."""
        request = self.begin_render(fmt)
        if not request.ready:
            logger.info(f"ℹ️ Payload nicht bereit ({', '.join(self._status.issues)}) – kein Rendering")
            return None
        try:
            image = self.renderer(request.content, request.style, fmt)
        except QRRenderError as e:
            logger.error(f"❌ Rendering fehlgeschlagen: {e}")
            raise
        self.complete_render(request, image)
        return image

    async def render_async(self, fmt: str = "png") -> Optional[bytes]:
        """
        Wie render(), aber der Renderer läuft in einem Worker-Thread.
        Gibt None zurück, wenn das Ergebnis inzwischen veraltet ist.
        """
        request = self.begin_render(fmt)
        if not request.ready:
            return None
        try:
            image = await asyncio.to_thread(self.renderer, request.content, request.style, fmt)
        except QRRenderError as e:
            logger.error(f"❌ Rendering fehlgeschlagen: {e}")
            raise
        return image if self.complete_render(request, image) else None
