# utils/qr_schema.py
"""
Definiert Validierungsregeln für jeden QR-Code-Typ.
Pflichtfelder pro Typ + die Prüf-Prädikate (E-Mail, Telefon, URL),
die der Encoder für den "ready"-Status nutzt.
"""

from __future__ import annotations

import re
from typing import Any, Dict
from urllib.parse import urlparse


_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_RE = re.compile(r"^\+?[0-9\-.\s()]{10,}$")

SMS_MAX_LENGTH = 160
TEXT_RECOMMENDED_LENGTH = 300


# ✅ MINIMALE Felder pro QR-Typ
QR_SCHEMAS: Dict[str, Dict[str, Any]] = {
    "url": {
        "required": ["content"]
    },
    "text": {
        "required": ["content"]
    },
    "email": {
        "required": ["to"],
        "optional": ["subject", "body"]
    },
    "sms": {
        "required": ["number"],
        "optional": ["message"]
    },
    "wifi": {
        "required": ["ssid", "password"],
        "optional": ["security", "hidden"]
    },
    "phone": {
        "required": ["number"]
    },
    "vcard": {
        # Vor- ODER Nachname genügt
        "required_any": ["first_name", "last_name"],
        "optional": ["organization", "phone", "email", "website", "address"]
    },
    "event": {
        "required": ["title", "start_date", "end_date"],
        "optional": ["description", "location"]
    },
    "location": {
        "required_any": ["query", "coordinates"],
        "optional": ["latitude", "longitude"]
    },
}


def is_valid_email(value: str) -> bool:
    """local@domain.tld – bewusst locker."""
    return bool(_EMAIL_RE.match(value or ""))


def is_valid_phone(value: str) -> bool:
    """Optional führendes '+', dann Ziffern/Trennzeichen, mindestens 10 Zeichen."""
    return bool(_PHONE_RE.match(value or ""))


def is_valid_url(value: str) -> bool:
    """Schema + Host müssen sich parsen lassen."""
    if not value:
        return False
    try:
        parsed = urlparse(value.strip())
    except ValueError:
        return False
    return bool(parsed.scheme and parsed.netloc)


def missing_fields(qr_type: str, data: Dict[str, Any]) -> list[str]:
    """Gibt die fehlenden Pflichtfelder für einen QR-Typ zurück."""
    schema = QR_SCHEMAS.get(qr_type)
    if not schema:
        return []

    missing = [
        name for name in schema.get("required", [])
        if data.get(name) in ("", None)
    ]
    any_of = schema.get("required_any", [])
    if any_of and all(data.get(name) in ("", None) for name in any_of):
        missing.append(" or ".join(any_of))
    return missing
