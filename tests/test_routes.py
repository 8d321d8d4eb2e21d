import base64
import io
import json
import zipfile

import pytest

from routes.utils import get_renderer
from main import app
from utils.qr_generator import QRRenderError


def test_health(api_client):
    assert api_client.get("/health").json() == {"status": "ok"}


def test_encode_wifi(api_client):
    response = api_client.post(
        "/api/v1/encode",
        json={"type": "wifi", "wifi": {"ssid": "MyNet", "password": "secret", "security": "WPA", "hidden": False}},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["content"] == "WIFI:T:WPA;S:MyNet;P:secret;H:false;;"
    assert body["ready"] is True
    assert body["issues"] == []


def test_encode_reports_issues(api_client):
    body = api_client.post("/api/v1/encode", json={"type": "email", "email": {"to": "nope"}}).json()
    assert body["ready"] is False
    assert body["issues"] == ["Invalid email address"]


def test_encode_rejects_unknown_type(api_client):
    assert api_client.post("/api/v1/encode", json={"type": "fax"}).status_code == 422


def test_style_normalization(api_client):
    body = api_client.post("/api/v1/style", json={"settings": {"size": 5000, "dotsType": "dots"}}).json()
    assert body["size"] == 1024
    assert body["dotsType"] == "dots"


def test_render_returns_image_and_records_history(api_client):
    response = api_client.post(
        "/api/v1/render",
        json={
            "data": {"type": "location", "location": {"query": "Eiffel Tower"}},
            "settings": {"fgColor": "#1E40AF"},
            "format": "svg",
            "name": "Paris",
        },
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("image/svg+xml")
    assert response.content == b"svg:geo:0,0?q=Eiffel%20Tower"

    history = api_client.get("/api/v1/history").json()
    assert history["count"] == 1
    item = history["items"][0]
    assert item["id"] == response.headers["x-history-id"]
    assert item["name"] == "Paris"
    assert item["settings"]["fgColor"] == "#1E40AF"
    assert item["data"]["content"] == "geo:0,0?q=Eiffel%20Tower"
    assert base64.b64decode(item["url"].split(",", 1)[1]) == response.content

    single = api_client.get(f"/api/v1/history/{item['id']}")
    assert single.status_code == 200
    assert single.json()["preview"].startswith("📄")


def test_render_not_ready(api_client):
    response = api_client.post("/api/v1/render", json={"data": {"type": "url", "content": ""}})
    assert response.status_code == 422
    assert response.json()["detail"]["issues"] == ["Missing required field: content"]
    assert api_client.get("/api/v1/history").json()["count"] == 0


def test_render_failure_is_bad_gateway(api_client):
    def broken(content, style, fmt="png"):
        raise QRRenderError("Content too long for a QR code")

    app.dependency_overrides[get_renderer] = lambda: broken
    response = api_client.post("/api/v1/render", json={"data": {"type": "text", "content": "hi"}})
    assert response.status_code == 502
    assert api_client.get("/api/v1/history").json()["count"] == 0


def test_history_is_capped_and_clearable(api_client):
    for i in range(22):
        api_client.post("/api/v1/render", json={"data": {"type": "text", "content": f"n{i}"}})

    history = api_client.get("/api/v1/history").json()
    assert history["count"] == 20
    assert history["items"][0]["data"]["content"] == "n21"

    assert api_client.delete("/api/v1/history").json() == {"ok": True, "removed": 20}
    assert api_client.get("/api/v1/history").json()["count"] == 0
    assert api_client.get("/api/v1/history/unknown").status_code == 404


def test_templates(api_client):
    body = api_client.get("/api/v1/templates").json()
    assert body["count"] == 6
    assert "wifi-guest" in body["categories"]["Network"]

    applied = api_client.post(
        "/api/v1/templates/wifi-guest/apply",
        json={"data": {"type": "url", "content": "https://x.de"}, "settings": {"size": 512}},
    ).json()
    assert applied["data"]["type"] == "wifi"
    assert applied["data"]["content"] == "WIFI:T:WPA;S:Gaeste-WLAN;P:willkommen123;H:false;;"
    assert applied["settings"]["size"] == 256
    assert applied["ready"] is True

    assert api_client.post("/api/v1/templates/nope/apply").status_code == 404


def test_batch_json(api_client):
    body = api_client.post("/api/v1/batch", json={"text": "a\n\n b \nc", "format": "png"}).json()
    assert body["count"] == 3
    assert body["completed"] == 3
    assert [i["filename"] for i in body["items"]] == ["qr-1.png", "qr-2.png", "qr-3.png"]
    assert body["items"][1]["content"] == "b"


def test_batch_zip(api_client):
    response = api_client.post("/api/v1/batch", json={"text": "a\nb", "format": "svg", "archive": True})
    assert response.headers["content-type"] == "application/zip"
    with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
        assert archive.namelist() == ["qr-1.svg", "qr-2.svg"]


def test_batch_empty(api_client):
    assert api_client.post("/api/v1/batch", json={"text": "\n  \n"}).status_code == 400


def test_batch_upload(api_client):
    response = api_client.post(
        "/api/v1/batch/upload",
        files={"file": ("links.csv", b"https://a.de\nhttps://b.de\n", "text/csv")},
        data={"format": "jpeg", "settings": '{"size": 128}'},
    )
    assert response.status_code == 200
    assert response.json()["completed"] == 2

    rejected = api_client.post(
        "/api/v1/batch/upload",
        files={"file": ("links.pdf", b"x", "application/pdf")},
    )
    assert rejected.status_code == 400


@pytest.mark.asyncio
async def test_render_with_real_renderer(client):
    response = await client.post(
        "/api/v1/render",
        json={"data": {"type": "phone", "phone": {"number": "+49 30 1234567"}}, "format": "png"},
    )
    assert response.status_code == 200
    assert response.content.startswith(b"\x89PNG")

    history = (await client.get("/api/v1/history")).json()
    assert history["items"][0]["preview"] == "📞 +49 30 1234567"


@pytest.mark.asyncio
async def test_oversized_content_with_real_renderer_is_bad_gateway(client):
    response = await client.post(
        "/api/v1/render",
        json={"data": {"type": "text", "content": "x" * 8000}, "settings": {"errorCorrectionLevel": "H"}},
    )
    assert response.status_code == 502
    assert response.json()["detail"] == "Content too long for a QR code"
    assert (await client.get("/api/v1/history")).json()["count"] == 0


@pytest.mark.parametrize(
    "settings",
    [
        {"gradientColorStops": 5},
        {"gradientColorStops": "rot"},
        {"gradientColorStops": [{"offset": 0, "color": "#000000"}]},
        {"gradientColorStops": [None, 3]},
    ],
)
def test_malformed_gradient_stops_keep_previous_value(api_client, settings):
    response = api_client.post("/api/v1/style", json={"settings": settings})
    assert response.status_code == 200
    assert response.json()["gradientColorStops"] == []

    rendered = api_client.post("/api/v1/render", json={"data": {"type": "text", "content": "hi"}, "settings": settings})
    assert rendered.status_code == 200


def test_style_accepts_size_preset_names(api_client):
    body = api_client.post("/api/v1/style", json={"settings": {"size": "large"}}).json()
    assert body["size"] == 384


@pytest.mark.parametrize(
    "data, issues",
    [
        ({"type": "email", "email": {"to": 123}}, ["Invalid email address"]),
        ({"type": "email", "email": "x"}, ["Missing required field: to"]),
        ({"type": "wifi", "wifi": {"ssid": 42, "password": None}}, ["Missing required field: password"]),
    ],
)
def test_encode_tolerates_wrongly_typed_fields(api_client, data, issues):
    response = api_client.post("/api/v1/encode", json=data)
    assert response.status_code == 200
    body = response.json()
    assert body["ready"] is False
    assert body["issues"] == issues


def test_encode_coerces_numbers_to_text(api_client):
    body = api_client.post("/api/v1/encode", json={"type": "sms", "sms": {"number": 15551234567}}).json()
    assert body["content"] == "sms:15551234567"
    assert body["ready"] is True


@pytest.mark.parametrize("logo", ["/etc/passwd", {"image": "../../database.db"}, "https://example.com/logo.png"])
def test_logo_must_be_a_data_url(api_client, logo):
    response = api_client.post(
        "/api/v1/render",
        json={"data": {"type": "text", "content": "hi"}, "settings": {"logo": logo}},
    )
    assert response.status_code == 422
    assert api_client.get("/api/v1/history").json()["count"] == 0

    batch = api_client.post("/api/v1/batch", json={"text": "a", "settings": {"logo": logo}})
    assert batch.status_code == 422

    upload = api_client.post(
        "/api/v1/batch/upload",
        files={"file": ("links.txt", b"a\n", "text/plain")},
        data={"settings": json.dumps({"logo": logo})},
    )
    assert upload.status_code == 422


def test_data_url_logo_is_accepted(api_client):
    logo = "data:image/png;base64,iVBORw0KGgo="
    response = api_client.post(
        "/api/v1/render",
        json={"data": {"type": "text", "content": "hi"}, "settings": {"logo": logo}},
    )
    assert response.status_code == 200
    item = api_client.get("/api/v1/history").json()["items"][0]
    assert item["settings"]["logo"]["image"] == logo
