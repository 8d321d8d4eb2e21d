from datetime import timedelta, timezone

import pytest

from utils.qr_engine import QRSession, event_timezone
from utils.qr_generator import QRRenderError, render_qr
from utils.qr_payload import LocationPayload, PayloadKind, TextPayload, UrlPayload, WifiPayload

UTC2 = timezone(timedelta(hours=2))


def fake_renderer(content, style, fmt="png"):
    return f"{fmt}:{content}".encode("utf-8")


def failing_renderer(content, style, fmt="png"):
    raise QRRenderError("kein Bild")


def make_session(**kwargs):
    kwargs.setdefault("renderer", fake_renderer)
    kwargs.setdefault("tz", UTC2)
    return QRSession(**kwargs)


def test_default_state_is_ready_url():
    session = make_session()
    assert session.payload == UrlPayload("https://example.com")
    assert session.ready
    assert session.content == "https://example.com"


def test_every_mutation_recomputes_status():
    session = make_session()
    session.set_kind("wifi")
    assert session.payload == WifiPayload()
    assert not session.ready

    session.update_fields(ssid="MyNet", password="secret")
    assert session.ready
    assert session.content == "WIFI:T:WPA;S:MyNet;P:secret;H:false;;"

    session.set_kind(PayloadKind.WIFI)
    assert session.payload.ssid == "MyNet"

    session.set_payload(LocationPayload(query="Eiffel Tower"))
    assert session.content == "geo:0,0?q=Eiffel%20Tower"


def test_event_timezone_is_applied():
    session = make_session()
    session.set_kind("event")
    status = session.update_fields(title="T", start_date="2024-06-15T09:00", end_date="2024-06-15T10:00")
    assert "DTSTART:20240615T070000Z" in status.content


def test_event_timezone_from_environment(monkeypatch):
    monkeypatch.setenv("QR_EVENT_TIMEZONE", "Europe/Berlin")
    assert event_timezone().key == "Europe/Berlin"
    monkeypatch.setenv("QR_EVENT_TIMEZONE", "Mars/Olympus")
    assert event_timezone() is None
    monkeypatch.delenv("QR_EVENT_TIMEZONE")
    assert event_timezone() is None


def test_style_updates_and_gradient_stops():
    session = make_session()
    session.update_style({"gradientType": "linear"}, fgColor="#112233")
    assert session.style.fg_color == "#112233"

    session.add_gradient_stop(0.5, "#FF0000")
    assert len(session.style.gradient_stops) == 3
    assert session.remove_gradient_stop(1)
    assert not session.remove_gradient_stop(0)
    assert len(session.style.gradient_stops) == 2


def test_render_records_history():
    session = make_session()
    image = session.render("svg")
    assert image == b"svg:https://example.com"
    assert session.last_format == "svg"
    assert len(session.history) == 1
    record = session.history.items[0]
    assert record.payload == session.payload
    assert record.image_url.startswith("data:image/svg+xml;base64,")


def test_render_skipped_when_not_ready():
    session = make_session()
    session.set_kind("email")
    assert session.render() is None
    assert len(session.history) == 0


def test_stale_render_is_discarded():
    session = make_session()
    first = session.begin_render()
    session.update_fields(content="https://second.example.com")
    second = session.begin_render()

    assert not session.complete_render(first, b"old")
    assert session.last_image is None
    assert session.complete_render(second, b"new")
    assert session.last_image == b"new"
    assert [r.payload.content for r in session.history.items] == ["https://second.example.com"]


def test_empty_image_is_not_recorded():
    session = make_session()
    assert session.complete_render(session.begin_render(), b"")
    assert len(session.history) == 0


def test_render_failure_leaves_state_untouched():
    session = make_session(renderer=failing_renderer)
    before = (session.payload, session.style)
    with pytest.raises(QRRenderError):
        session.render()
    assert (session.payload, session.style) == before
    assert len(session.history) == 0


def test_oversized_content_fails_with_render_error():
    session = make_session(renderer=render_qr, payload=TextPayload("x" * 8000))
    session.update_style({"errorCorrectionLevel": "H"})
    assert session.ready
    with pytest.raises(QRRenderError):
        session.render()
    assert session.last_image is None
    assert len(session.history) == 0


def test_templates_and_history_loading():
    session = make_session()
    session.apply_template("wifi-guest")
    assert session.payload.kind is PayloadKind.WIFI
    assert session.style.dots_type == "rounded"
    session.render()
    record_id = session.history.items[0].id

    session.set_kind("text")
    session.load_history_item(record_id)
    assert session.payload.ssid == "Gaeste-WLAN"
    assert session.ready

    with pytest.raises(KeyError):
        session.apply_template("nope")
    with pytest.raises(KeyError):
        session.load_history_item("nope")


@pytest.mark.asyncio
async def test_render_async():
    session = make_session()
    image = await session.render_async("png")
    assert image == b"png:https://example.com"
    assert len(session.history) == 1


@pytest.mark.asyncio
async def test_render_async_discards_superseded_result():
    calls = []

    def slow_renderer(content, style, fmt="png"):
        calls.append(content)
        session.begin_render()
        return b"img"

    session = make_session(renderer=slow_renderer)
    assert await session.render_async() is None
    assert calls == ["https://example.com"]
    assert len(session.history) == 0
