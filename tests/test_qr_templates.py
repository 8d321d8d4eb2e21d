import pytest

from utils.qr_config import DEFAULT_STYLE, merge_style
from utils.qr_payload import EventPayload, LocationPayload, PayloadKind, UrlPayload, VCardPayload, WifiPayload, is_ready
from utils.qr_templates import TEMPLATES, QRTemplate, apply_template, get_template, templates_by_category


def test_catalog():
    ids = [t.id for t in TEMPLATES]
    assert ids == [
        "business-card",
        "wifi-guest",
        "restaurant-menu",
        "event-ticket",
        "location-shop",
        "social-instagram",
    ]
    assert get_template("nope") is None
    assert {t.id for t in templates_by_category()["Business"]} == {"business-card", "restaurant-menu", "location-shop"}


@pytest.mark.parametrize("template", TEMPLATES, ids=lambda t: t.id)
def test_every_template_yields_a_ready_payload(template):
    payload, style = apply_template(UrlPayload(), DEFAULT_STYLE, template)
    assert payload.kind.value == template.data["type"]
    assert is_ready(payload)
    assert style.size == template.settings["size"]


def test_same_kind_overlays_fields():
    current = VCardPayload(first_name="Anna", address="Hauptstr. 1")
    payload, _ = apply_template(current, DEFAULT_STYLE, get_template("business-card"))
    assert payload.first_name == "Max"
    assert payload.organization == "Musterfirma GmbH"
    assert payload.address == "Hauptstr. 1"


def test_other_kind_switches_active_kind():
    payload, _ = apply_template(UrlPayload("https://x.de"), DEFAULT_STYLE, get_template("wifi-guest"))
    assert payload == WifiPayload(ssid="Gaeste-WLAN", password="willkommen123", security="WPA")


def test_location_template_coerces_coordinates():
    payload, _ = apply_template(UrlPayload(), DEFAULT_STYLE, get_template("location-shop"))
    assert isinstance(payload, LocationPayload)
    assert payload.latitude == 52.52
    assert payload.query.startswith("Mein Laden")


def test_style_is_merged_not_replaced():
    current = merge_style(DEFAULT_STYLE, {"errorCorrectionLevel": "H", "fgColor": "#123456"})
    _, style = apply_template(UrlPayload(), current, get_template("event-ticket"))
    assert style.error_correction == "H"
    assert style.fg_color == "#123456"
    assert style.gradient_type == "linear"
    assert style.has_gradient


def test_template_without_data_keeps_payload():
    template = QRTemplate(id="dark", name="Dunkel", description="", category="Style", preview="🌙", settings={"bgColor": "#111827"})
    current = EventPayload(title="T")
    payload, style = apply_template(current, DEFAULT_STYLE, template)
    assert payload is current
    assert payload.kind is PayloadKind.EVENT
    assert style.bg_color == "#111827"
