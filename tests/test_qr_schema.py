import pytest

from utils.qr_schema import QR_SCHEMAS, is_valid_email, is_valid_phone, is_valid_url, missing_fields


@pytest.mark.parametrize("value, ok", [("a@b.com", True), ("a@b", False), ("a b@c.de", False), ("", False)])
def test_email_predicate(value, ok):
    assert is_valid_email(value) is ok


@pytest.mark.parametrize("value, ok", [("+49 30 1234567", True), ("(030) 123-4567", True), ("12345", False), ("abc1234567", False)])
def test_phone_predicate(value, ok):
    assert is_valid_phone(value) is ok


@pytest.mark.parametrize("value, ok", [("https://example.com", True), ("ftp://host/x", True), ("example.com", False), ("", False)])
def test_url_predicate(value, ok):
    assert is_valid_url(value) is ok


def test_every_kind_has_a_schema():
    assert set(QR_SCHEMAS) == {"url", "text", "email", "sms", "wifi", "phone", "vcard", "event", "location"}


def test_missing_fields():
    assert missing_fields("event", {"title": "T", "start_date": ""}) == ["start_date", "end_date"]
    assert missing_fields("vcard", {"last_name": "Dupont"}) == []
    assert missing_fields("vcard", {}) == ["first_name or last_name"]
    assert missing_fields("unknown", {}) == []
