from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from routes.utils import PayloadIn
from utils.qr_config import DEFAULT_STYLE, merge_style, style_to_dict
from utils.qr_engine import event_timezone
from utils.qr_payload import UrlPayload, check_payload, payload_from_dict, payload_to_dict
from utils.qr_templates import TEMPLATES, apply_template, get_template, templates_by_category

router = APIRouter(prefix="/api/v1/templates", tags=["Templates"])


class ApplyTemplateIn(BaseModel):
    data: Optional[PayloadIn] = None
    settings: Dict[str, Any] = Field(default_factory=dict)


@router.get("")
def list_templates() -> dict[str, Any]:
    return {
        "items": [t.to_dict() for t in TEMPLATES],
        "count": len(TEMPLATES),
        "categories": {name: [t.id for t in group] for name, group in templates_by_category().items()},
    }


@router.post("/{template_id}/apply")
def apply(template_id: str, body: Optional[ApplyTemplateIn] = None) -> dict[str, Any]:
    """Vorlage auf den mitgeschickten (oder Standard-)Zustand anwenden."""
    template = get_template(template_id)
    if template is None:
        raise HTTPException(status_code=404, detail="Template not found")

    body = body or ApplyTemplateIn()
    payload = payload_from_dict(body.data.model_dump()) if body.data else UrlPayload()
    style = merge_style(DEFAULT_STYLE, body.settings)

    payload, style = apply_template(payload, style, template)
    tz = event_timezone()
    status = check_payload(payload, tz)
    return {
        "template": template.id,
        "data": payload_to_dict(payload, tz),
        "settings": style_to_dict(style),
        "ready": status.ready,
        "issues": list(status.issues),
    }
