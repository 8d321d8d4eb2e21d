from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from routes.utils import get_history_store
from utils.qr_history import QRHistoryStore

router = APIRouter(prefix="/api/v1/history", tags=["History"])


def _serialize(record) -> dict[str, Any]:
    data = record.to_dict()
    data["preview"] = record.preview
    return data


@router.get("")
def list_history(store: QRHistoryStore = Depends(get_history_store)) -> dict[str, Any]:
    items = [_serialize(r) for r in store.items]
    return {"items": items, "count": len(items)}


@router.get("/{record_id}")
def get_history_item(record_id: str, store: QRHistoryStore = Depends(get_history_store)) -> dict[str, Any]:
    record = store.get(record_id)
    if record is None:
        raise HTTPException(status_code=404, detail="History record not found")
    return _serialize(record)


@router.delete("")
def clear_history(store: QRHistoryStore = Depends(get_history_store)) -> dict[str, Any]:
    removed = len(store)
    store.clear()
    return {"ok": True, "removed": removed}
