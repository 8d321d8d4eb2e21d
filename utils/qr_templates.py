# =============================================================================
# 🪄 utils/qr_templates.py
# -----------------------------------------------------------------------------
# Kuratierte Vorlagen (Teil-Payload + Teil-Stil).
# Anwenden = Zusammenführen: Vorlagenfelder gewinnen, der Rest bleibt.
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from utils.qr_config import StyleConfiguration, merge_style
from utils.qr_payload import (
    PayloadKind,
    QRPayload,
    empty_payload,
    fields_from_dict,
    with_fields,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QRTemplate:
    id: str
    name: str
    description: str
    category: str
    preview: str
    data: Dict[str, Any] = field(default_factory=dict)
    settings: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "preview": self.preview,
            "data": self.data,
            "settings": self.settings,
        }


# ─────────────────────────────────────────────
# 📚 Katalog
# ─────────────────────────────────────────────
TEMPLATES: List[QRTemplate] = [
    QRTemplate(
        id="business-card",
        name="Visitenkarte",
        description="Vollständiger Geschäftskontakt",
        category="Business",
        preview="👤",
        data={
            "type": "vcard",
            "vcard": {
                "firstName": "Max",
                "lastName": "Mustermann",
                "organization": "Musterfirma GmbH",
                "phone": "+49 30 1234567",
                "email": "max@example.com",
                "website": "https://example.com",
            },
        },
        settings={
            "size": 300,
            "dotsType": "classy",
            "cornersSquareType": "extra-rounded",
            "fgColor": "#1E40AF",
            "bgColor": "#EFF6FF",
        },
    ),
    QRTemplate(
        id="wifi-guest",
        name="Gäste-WLAN",
        description="WLAN-Zugang für Besucher",
        category="Network",
        preview="📶",
        data={
            "type": "wifi",
            "wifi": {"ssid": "Gaeste-WLAN", "password": "willkommen123", "security": "WPA"},
        },
        settings={
            "size": 256,
            "dotsType": "rounded",
            "cornersSquareType": "dot",
            "fgColor": "#059669",
            "bgColor": "#ECFDF5",
        },
    ),
    QRTemplate(
        id="restaurant-menu",
        name="Restaurant-Menü",
        description="Link zur digitalen Speisekarte",
        category="Business",
        preview="🍽️",
        data={"type": "url", "content": "https://restaurant-menu.example.com"},
        settings={
            "size": 280,
            "dotsType": "classy-rounded",
            "cornersSquareType": "extra-rounded",
            "fgColor": "#DC2626",
            "bgColor": "#FEF2F2",
            "frame": {"style": "banner", "color": "#DC2626", "text": "Menü", "textColor": "#FFFFFF"},
        },
    ),
    QRTemplate(
        id="event-ticket",
        name="Event-Ticket",
        description="Veranstaltungsinformationen",
        category="Event",
        preview="🎫",
        data={
            "type": "event",
            "event": {
                "title": "Tech-Konferenz 2024",
                "description": "Die größte Tech-Konferenz des Jahres",
                "location": "Kongresszentrum, Berlin",
                "startDate": "2024-06-15T09:00:00",
                "endDate": "2024-06-15T18:00:00",
            },
        },
        settings={
            "size": 320,
            "dotsType": "extra-rounded",
            "cornersSquareType": "extra-rounded",
            "gradientType": "linear",
            "gradientDirection": 45,
            "gradientColorStops": [
                {"offset": 0, "color": "#8B5CF6"},
                {"offset": 1, "color": "#EC4899"},
            ],
        },
    ),
    QRTemplate(
        id="location-shop",
        name="Shop-Standort",
        description="Adresse Ihres Geschäfts",
        category="Business",
        preview="📍",
        data={
            "type": "location",
            "location": {
                "latitude": 52.52,
                "longitude": 13.405,
                "query": "Mein Laden, Friedrichstraße 1, Berlin",
            },
        },
        settings={
            "size": 260,
            "dotsType": "dots",
            "cornersSquareType": "dot",
            "fgColor": "#EA580C",
            "bgColor": "#FFF7ED",
        },
    ),
    QRTemplate(
        id="social-instagram",
        name="Instagram-Profil",
        description="Link zu Ihrem Instagram",
        category="Social",
        preview="📸",
        data={"type": "url", "content": "https://instagram.com/meinkonto"},
        settings={
            "size": 240,
            "dotsType": "classy",
            "cornersSquareType": "extra-rounded",
            "gradientType": "radial",
            "gradientColorStops": [
                {"offset": 0, "color": "#F59E0B"},
                {"offset": 0.5, "color": "#EF4444"},
                {"offset": 1, "color": "#8B5CF6"},
            ],
        },
    ),
]


def get_template(template_id: str) -> Optional[QRTemplate]:
    return next((t for t in TEMPLATES if t.id == template_id), None)


def templates_by_category() -> Dict[str, List[QRTemplate]]:
    grouped: Dict[str, List[QRTemplate]] = {}
    for template in TEMPLATES:
        grouped.setdefault(template.category, []).append(template)
    return grouped


# ─────────────────────────────────────────────
# 🔀 Anwenden
# ─────────────────────────────────────────────
def apply_template(
    payload: QRPayload,
    style: StyleConfiguration,
    template: QRTemplate,
) -> Tuple[QRPayload, StyleConfiguration]:
    """
    Führt eine Vorlage mit dem aktuellen Zustand zusammen.
    Anderer Typ in der Vorlage → aktiver Typ wechselt.
    """
    new_payload = payload
    if template.data:
        kind = PayloadKind(str(template.data.get("type") or payload.kind.value))
        base = payload if kind == payload.kind else empty_payload(kind)
        new_payload = with_fields(base, **fields_from_dict(kind, template.data))

    new_style = merge_style(style, template.settings)
    logger.info(f"🪄 Vorlage angewendet: {template.id} ({new_payload.kind.value})")
    return new_payload, new_style
