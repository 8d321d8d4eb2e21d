# =============================================================================
# 🕒 utils/qr_history.py
# -----------------------------------------------------------------------------
# Verlauf der erfolgreich generierten QR-Codes
# - unveränderliche Snapshots (Payload + Stil + Bild)
# - max. 20 Einträge, ältester fliegt zuerst raus (FIFO)
# - Persistenz über ein austauschbares Repository (load/save)
# =============================================================================

from __future__ import annotations

import json
import logging
import os
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy.orm import Session

from models.app_state import AppState
from utils.qr_config import StyleConfiguration, style_from_dict, style_to_dict
from utils.qr_payload import QRPayload, describe_payload, payload_from_dict, payload_to_dict

logger = logging.getLogger(__name__)

HISTORY_KEY = os.getenv("QR_HISTORY_KEY", "qr-code-history")
HISTORY_LIMIT = 20

# Lesen-Ändern-Schreiben des ganzen Verlaufs (ein Schlüssel) nur seriell
_WRITE_LOCK = threading.Lock()


@dataclass(frozen=True)
class HistoryRecord:
    id: str
    payload: QRPayload
    style: StyleConfiguration
    image_url: str
    created_at: datetime
    name: Optional[str] = None
    category: Optional[str] = None

    @property
    def preview(self) -> str:
        return describe_payload(self.payload)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "data": payload_to_dict(self.payload),
            "settings": style_to_dict(self.style),
            "url": self.image_url,
            "createdAt": self.created_at.isoformat(),
            "name": self.name,
            "category": self.category,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryRecord":
        created = datetime.fromisoformat(str(data["createdAt"]).replace("Z", "+00:00"))
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        return cls(
            id=str(data["id"]),
            payload=payload_from_dict(data.get("data") or {}),
            style=style_from_dict(data.get("settings")),
            image_url=str(data.get("url") or ""),
            created_at=created,
            name=data.get("name"),
            category=data.get("category"),
        )


def records_to_json(records: List[HistoryRecord]) -> str:
    return json.dumps([r.to_dict() for r in records], ensure_ascii=False)


def records_from_json(raw: str) -> List[HistoryRecord]:
    try:
        items = json.loads(raw or "[]")
    except json.JSONDecodeError as e:
        logger.warning(f"⚠️ Verlauf nicht lesbar, starte leer: {e}")
        return []
    if not isinstance(items, list):
        logger.warning("⚠️ Verlauf hat unerwartetes Format, starte leer")
        return []

    records: List[HistoryRecord] = []
    for item in items:
        try:
            records.append(HistoryRecord.from_dict(item))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"⚠️ Defekter Verlaufseintrag übersprungen: {e}")
    return records


# =============================================================================
# 💾 Repositories
# =============================================================================
class HistoryRepository(Protocol):
    def load(self, for_update: bool = False) -> List[HistoryRecord]: ...

    def save(self, records: List[HistoryRecord]) -> None: ...


class InMemoryHistoryRepository:
    """Hält den Verlauf als JSON im Speicher (Tests, CLI)."""

    def __init__(self, raw: str = "[]") -> None:
        self.raw = raw

    def load(self, for_update: bool = False) -> List[HistoryRecord]:
        return records_from_json(self.raw)

    def save(self, records: List[HistoryRecord]) -> None:
        self.raw = records_to_json(records)


class SQLHistoryRepository:
    """Speichert den ganzen Verlauf als JSON unter EINEM Schlüssel in app_state."""

    def __init__(self, db: Session, key: str = HISTORY_KEY) -> None:
        self.db = db
        self.key = key

    def load(self, for_update: bool = False) -> List[HistoryRecord]:
        """for_update=True: frisch aus der DB lesen und die Zeile bis zum Commit sperren."""
        row = self.db.get(
            AppState,
            self.key,
            populate_existing=for_update,
            with_for_update=for_update or None,
        )
        if row is None:
            return []
        return records_from_json(row.value)

    def save(self, records: List[HistoryRecord]) -> None:
        row = self.db.get(AppState, self.key)
        value = records_to_json(records)
        if row is None:
            self.db.add(AppState(key=self.key, value=value))
        else:
            row.value = value
        self.db.commit()
        logger.info(f"💾 Verlauf gespeichert ({len(records)} Einträge, key={self.key})")


# =============================================================================
# 📚 Store
# =============================================================================
class QRHistoryStore:
    def __init__(self, repository: HistoryRepository, limit: int = HISTORY_LIMIT) -> None:
        self.repository = repository
        self.limit = limit
        self._items: List[HistoryRecord] = repository.load()[:limit]

    @property
    def items(self) -> List[HistoryRecord]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, record_id: str) -> Optional[HistoryRecord]:
        return next((r for r in self._items if r.id == record_id), None)

    def add(self, record: HistoryRecord) -> HistoryRecord:
        """
        Neuester Eintrag vorne, danach auf das Limit kürzen (keine Deduplizierung).
        Basis ist immer der frisch gelesene, gesperrte Stand im Repository.
        """
        with _WRITE_LOCK:
            current = self.repository.load(for_update=True)
            self._items = [record] + current[: self.limit - 1]
            self.repository.save(self._items)
        return record

    def record(
        self,
        payload: QRPayload,
        style: StyleConfiguration,
        image_url: str,
        name: Optional[str] = None,
        category: Optional[str] = None,
    ) -> HistoryRecord:
        return self.add(
            HistoryRecord(
                id=uuid.uuid4().hex,
                payload=payload,
                style=style,
                image_url=image_url,
                created_at=datetime.now(timezone.utc),
                name=name,
                category=category,
            )
        )

    def clear(self) -> None:
        with _WRITE_LOCK:
            self.repository.load(for_update=True)
            self._items = []
            self.repository.save(self._items)
        logger.info("🗑️ Verlauf gelöscht")
