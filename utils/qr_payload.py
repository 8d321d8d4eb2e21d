# =============================================================================
# 🧩 utils/qr_payload.py
# -----------------------------------------------------------------------------
# Payload-Modell & Encoder für alle 9 Inhaltstypen.
# Jeder Typ ist eine eigene (frozen) Dataclass – genau EIN Typ ist aktiv.
# Der kanonische QR-String wird IMMER aus den Feldern abgeleitet.
# =============================================================================

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone, tzinfo
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple, Union
from urllib.parse import quote

from utils.qr_schema import (
    SMS_MAX_LENGTH,
    TEXT_RECOMMENDED_LENGTH,
    is_valid_email,
    is_valid_phone,
    is_valid_url,
    missing_fields,
)

logger = logging.getLogger(__name__)

EVENT_PRODID = "-//QR Studio//Event//EN"
EVENT_UID_DOMAIN = "qrstudio"


class PayloadKind(str, Enum):
    URL = "url"
    TEXT = "text"
    EMAIL = "email"
    SMS = "sms"
    WIFI = "wifi"
    PHONE = "phone"
    VCARD = "vcard"
    EVENT = "event"
    LOCATION = "location"


WIFI_SECURITY = ("WPA", "WEP", "nopass")


# ---------------------------------------------------------------------------
# 📦 Payload-Varianten
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class UrlPayload:
    content: str = ""
    kind: ClassVar[PayloadKind] = PayloadKind.URL


@dataclass(frozen=True)
class TextPayload:
    content: str = ""
    kind: ClassVar[PayloadKind] = PayloadKind.TEXT


@dataclass(frozen=True)
class EmailPayload:
    to: str = ""
    subject: str = ""
    body: str = ""
    kind: ClassVar[PayloadKind] = PayloadKind.EMAIL


@dataclass(frozen=True)
class SmsPayload:
    number: str = ""
    message: str = ""
    kind: ClassVar[PayloadKind] = PayloadKind.SMS


@dataclass(frozen=True)
class WifiPayload:
    ssid: str = ""
    password: str = ""
    security: str = "WPA"
    hidden: bool = False
    kind: ClassVar[PayloadKind] = PayloadKind.WIFI


@dataclass(frozen=True)
class PhonePayload:
    number: str = ""
    kind: ClassVar[PayloadKind] = PayloadKind.PHONE


@dataclass(frozen=True)
class VCardPayload:
    first_name: str = ""
    last_name: str = ""
    organization: str = ""
    phone: str = ""
    email: str = ""
    website: str = ""
    address: str = ""
    kind: ClassVar[PayloadKind] = PayloadKind.VCARD


@dataclass(frozen=True)
class EventPayload:
    title: str = ""
    description: str = ""
    location: str = ""
    start_date: str = ""
    end_date: str = ""
    kind: ClassVar[PayloadKind] = PayloadKind.EVENT


@dataclass(frozen=True)
class LocationPayload:
    latitude: float = 0.0
    longitude: float = 0.0
    query: str = ""
    kind: ClassVar[PayloadKind] = PayloadKind.LOCATION


QRPayload = Union[
    UrlPayload,
    TextPayload,
    EmailPayload,
    SmsPayload,
    WifiPayload,
    PhonePayload,
    VCardPayload,
    EventPayload,
    LocationPayload,
]

PAYLOAD_CLASSES: Dict[PayloadKind, type] = {
    PayloadKind.URL: UrlPayload,
    PayloadKind.TEXT: TextPayload,
    PayloadKind.EMAIL: EmailPayload,
    PayloadKind.SMS: SmsPayload,
    PayloadKind.WIFI: WifiPayload,
    PayloadKind.PHONE: PhonePayload,
    PayloadKind.VCARD: VCardPayload,
    PayloadKind.EVENT: EventPayload,
    PayloadKind.LOCATION: LocationPayload,
}


@dataclass(frozen=True)
class PayloadStatus:
    """Ergebnis einer Prüfung: kanonischer String + Render-Bereitschaft."""

    kind: PayloadKind
    content: str
    ready: bool
    issues: Tuple[str, ...] = field(default_factory=tuple)
    warnings: Tuple[str, ...] = field(default_factory=tuple)


# ---------------------------------------------------------------------------
# 🔧 Hilfsfunktionen
# ---------------------------------------------------------------------------
def uri_component(value: str) -> str:
    """Prozent-Kodierung wie JavaScript encodeURIComponent."""
    return quote(value, safe="-_.!~*'()")


def _coerce_float(value: Any) -> float:
    if value in (None, ""):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _format_coordinate(value: float) -> str:
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text


def _ics_utc(value: str, tz: Optional[tzinfo] = None) -> str:
    """
    Lokales ISO-Datum → UTC im iCal-Basisformat (YYYYMMDDTHHMMSSZ).
    Nicht parsbare Werte ergeben "" – die Zeile wird dann weggelassen.
    """
    raw = (value or "").strip()
    if not raw:
        return ""
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError:
        logger.debug(f"⚠️ Ungültiges Event-Datum ignoriert: {value!r}")
        return ""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz) if tz is not None else dt.astimezone()
    return dt.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _event_uid(payload: EventPayload) -> str:
    seed = f"{payload.title}|{payload.start_date}|{payload.end_date}"
    return f"{uuid.uuid5(uuid.NAMESPACE_URL, seed).hex}@{EVENT_UID_DOMAIN}"


# ---------------------------------------------------------------------------
# 🧠 Encoder pro Typ
# ---------------------------------------------------------------------------
def _encode_email(p: EmailPayload) -> str:
    out = f"mailto:{p.to}"
    if p.subject or p.body:
        out += "?"
    if p.subject:
        out += f"subject={uri_component(p.subject)}"
    if p.subject and p.body:
        out += "&"
    if p.body:
        out += f"body={uri_component(p.body)}"
    return out


def _encode_sms(p: SmsPayload) -> str:
    out = f"sms:{p.number}"
    if p.message:
        out += f"?body={uri_component(p.message)}"
    return out


def _encode_wifi(p: WifiPayload) -> str:
    hidden = "true" if p.hidden else "false"
    return f"WIFI:T:{p.security};S:{p.ssid};P:{p.password};H:{hidden};;"


def _encode_vcard(p: VCardPayload) -> str:
    full_name = f"{p.first_name} {p.last_name}".strip()
    lines = [
        "BEGIN:VCARD",
        "VERSION:3.0",
        f"FN:{full_name}",
        f"N:{p.last_name};{p.first_name};;;",
    ]
    if p.organization:
        lines.append(f"ORG:{p.organization}")
    if p.phone:
        lines.append(f"TEL:{p.phone}")
    if p.email:
        lines.append(f"EMAIL:{p.email}")
    if p.website:
        lines.append(f"URL:{p.website}")
    if p.address:
        lines.append(f"ADR:;;{p.address};;;;")
    lines.append("END:VCARD")
    return "\n".join(lines)


def _encode_event(p: EventPayload, tz: Optional[tzinfo] = None) -> str:
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{EVENT_PRODID}",
        "BEGIN:VEVENT",
        f"SUMMARY:{p.title}",
    ]
    if p.description:
        lines.append(f"DESCRIPTION:{p.description}")
    if p.location:
        lines.append(f"LOCATION:{p.location}")

    dtstart = _ics_utc(p.start_date, tz)
    dtend = _ics_utc(p.end_date, tz)
    if dtstart:
        lines.append(f"DTSTART:{dtstart}")
    if dtend:
        lines.append(f"DTEND:{dtend}")

    lines += [f"UID:{_event_uid(p)}", "END:VEVENT", "END:VCALENDAR"]
    return "\n".join(lines)


def _encode_location(p: LocationPayload) -> str:
    # query hat IMMER Vorrang – Koordinaten werden dann verworfen
    if p.query:
        return f"geo:0,0?q={uri_component(p.query)}"
    if p.latitude and p.longitude:
        return f"geo:{_format_coordinate(p.latitude)},{_format_coordinate(p.longitude)}"
    return ""


def encode_payload(payload: QRPayload, tz: Optional[tzinfo] = None) -> str:
    """
    Erzeugt den kanonischen QR-String für einen Payload.
    Reine Funktion: gleiche Felder → byte-identische Ausgabe.
    """
    if isinstance(payload, (UrlPayload, TextPayload)):
        return payload.content
    if isinstance(payload, EmailPayload):
        return _encode_email(payload)
    if isinstance(payload, SmsPayload):
        return _encode_sms(payload)
    if isinstance(payload, WifiPayload):
        return _encode_wifi(payload)
    if isinstance(payload, PhonePayload):
        return f"tel:{payload.number}"
    if isinstance(payload, VCardPayload):
        return _encode_vcard(payload)
    if isinstance(payload, EventPayload):
        return _encode_event(payload, tz)
    if isinstance(payload, LocationPayload):
        return _encode_location(payload)
    raise TypeError(f"Unbekannter Payload-Typ: {type(payload).__name__}")


# ---------------------------------------------------------------------------
# ✅ Validierung / Render-Bereitschaft
# ---------------------------------------------------------------------------
def _schema_data(payload: QRPayload) -> Dict[str, Any]:
    data: Dict[str, Any] = {f.name: getattr(payload, f.name) for f in fields(payload)}
    if isinstance(payload, WifiPayload) and payload.security == "nopass":
        data["password"] = "-"
    if isinstance(payload, LocationPayload):
        data["coordinates"] = bool(payload.latitude and payload.longitude) or None
    if isinstance(payload, (UrlPayload, TextPayload)):
        data["content"] = payload.content.strip()
    return data


def check_payload(payload: QRPayload, tz: Optional[tzinfo] = None) -> PayloadStatus:
    """
    Berechnet Inhalt + Status. Wirft NIE bei ungültigen Feldern –
    stattdessen ready=False plus lesbare Meldung(en).
    """
    content = encode_payload(payload, tz)
    issues = [f"Missing required field: {name}" for name in missing_fields(payload.kind.value, _schema_data(payload))]
    warnings: list[str] = []

    if isinstance(payload, UrlPayload):
        if payload.content.strip() and not is_valid_url(payload.content):
            issues.append("Invalid URL (scheme and host required)")
    elif isinstance(payload, TextPayload):
        if len(payload.content) > TEXT_RECOMMENDED_LENGTH:
            warnings.append(f"Text longer than {TEXT_RECOMMENDED_LENGTH} characters may be hard to scan")
    elif isinstance(payload, EmailPayload):
        if payload.to and not is_valid_email(payload.to):
            issues.append("Invalid email address")
    elif isinstance(payload, SmsPayload):
        if payload.number and not is_valid_phone(payload.number):
            issues.append("Invalid phone number")
        if len(payload.message) > SMS_MAX_LENGTH:
            warnings.append(f"SMS message exceeds {SMS_MAX_LENGTH} characters")
    elif isinstance(payload, WifiPayload):
        if payload.security not in WIFI_SECURITY:
            issues.append(f"Unknown WiFi security: {payload.security}")
    elif isinstance(payload, PhonePayload):
        if payload.number and not is_valid_phone(payload.number):
            issues.append("Invalid phone number")
    elif isinstance(payload, VCardPayload):
        if payload.email and not is_valid_email(payload.email):
            issues.append("Invalid email address")
        if payload.website and not is_valid_url(payload.website):
            issues.append("Invalid website URL")
    elif isinstance(payload, EventPayload):
        for name in ("start_date", "end_date"):
            value = getattr(payload, name)
            if value and not _ics_utc(value, tz):
                issues.append(f"Invalid date: {name}")

    return PayloadStatus(
        kind=payload.kind,
        content=content,
        ready=not issues,
        issues=tuple(issues),
        warnings=tuple(warnings),
    )


def is_ready(payload: QRPayload, tz: Optional[tzinfo] = None) -> bool:
    return check_payload(payload, tz).ready


# ---------------------------------------------------------------------------
# ✏️ Mutation & Konstruktion
# ---------------------------------------------------------------------------
def empty_payload(kind: Union[PayloadKind, str]) -> QRPayload:
    return PAYLOAD_CLASSES[PayloadKind(kind)]()


def _coerce_fields(cls: type, values: Dict[str, Any]) -> Dict[str, Any]:
    coerced = dict(values)
    if cls is LocationPayload:
        for name in ("latitude", "longitude"):
            if name in coerced:
                coerced[name] = _coerce_float(coerced[name])
    if cls is WifiPayload and "hidden" in coerced:
        coerced["hidden"] = _coerce_bool(coerced["hidden"])
    for f in fields(cls):
        if f.type == "str" and f.name in coerced and not isinstance(coerced[f.name], str):
            coerced[f.name] = "" if coerced[f.name] is None else str(coerced[f.name])
    return coerced


def with_fields(payload: QRPayload, **changes: Any) -> QRPayload:
    """Neuer Payload gleichen Typs mit geänderten Feldern."""
    known = {f.name for f in fields(payload)}
    unknown = set(changes) - known
    if unknown:
        raise TypeError(f"Unbekannte Felder für {payload.kind.value}: {sorted(unknown)}")
    return replace(payload, **_coerce_fields(type(payload), changes))


# ---------------------------------------------------------------------------
# 🔁 Dict-Form (Persistenz / HTTP)
# ---------------------------------------------------------------------------
_CAMEL = {
    "first_name": "firstName",
    "last_name": "lastName",
    "start_date": "startDate",
    "end_date": "endDate",
}
_SNAKE = {v: k for k, v in _CAMEL.items()}


def payload_to_dict(payload: QRPayload, tz: Optional[tzinfo] = None) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "type": payload.kind.value,
        "content": encode_payload(payload, tz),
    }
    if isinstance(payload, (UrlPayload, TextPayload)):
        return data
    data[payload.kind.value] = {
        _CAMEL.get(f.name, f.name): getattr(payload, f.name) for f in fields(payload)
    }
    return data


def fields_from_dict(kind: Union[PayloadKind, str], data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Nur die im Dict tatsächlich gesetzten Felder (typgerecht konvertiert).
    Url/Text lesen "content" auf oberster Ebene, alle anderen den Unterblock.
    """
    kind = PayloadKind(kind)
    cls = PAYLOAD_CLASSES[kind]

    if kind in (PayloadKind.URL, PayloadKind.TEXT):
        return {"content": str(data.get("content") or "")} if "content" in data else {}

    raw = data.get(kind.value)
    if not isinstance(raw, Mapping):
        if raw:
            logger.warning(f"⚠️ Ungültiger {kind.value}-Block ignoriert: {raw!r}")
        raw = {}
    known = {f.name for f in fields(cls)}
    values = {}
    for key, value in raw.items():
        name = _SNAKE.get(key, key)
        if name in known:
            values[name] = value
    return _coerce_fields(cls, values)


def payload_from_dict(data: Dict[str, Any]) -> QRPayload:
    """
    Baut einen Payload aus {"type": ..., "content": ..., <type>: {...}}.
    camelCase- und snake_case-Schlüssel werden akzeptiert.
    """
    kind = PayloadKind(str(data.get("type") or "url").lower())
    return PAYLOAD_CLASSES[kind](**fields_from_dict(kind, data))


def describe_payload(payload: QRPayload, limit: int = 30) -> str:
    """Kurze Vorschau für Verlaufslisten."""

    def _clip(text: str) -> str:
        return text if len(text) <= limit else text[:limit] + "..."

    if isinstance(payload, UrlPayload):
        return f"🔗 {_clip(payload.content)}"
    if isinstance(payload, EmailPayload):
        return f"📧 {payload.to or 'Email'}"
    if isinstance(payload, SmsPayload):
        return f"💬 {payload.number or 'SMS'}"
    if isinstance(payload, WifiPayload):
        return f"📶 {payload.ssid or 'WiFi'}"
    if isinstance(payload, PhonePayload):
        return f"📞 {payload.number or 'Phone'}"
    return f"📄 {_clip(encode_payload(payload))}"
