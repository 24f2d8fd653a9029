import logging
import orjson
from eventauth.common.logging_setup import JSONFormatter, mask_email, sanitize_message_text


def test_sanitize_redacts_secrets_in_text():
    out = sanitize_message_text('otp=482913 pin: 123456 {"token": "abc.def"}')
    assert "482913" not in out
    assert "123456" not in out
    assert "abc.def" not in out


def test_mask_email():
    assert mask_email("member@example.com") == "me***@example.com"
    assert mask_email("not-an-email") == "not-an-email"
    assert mask_email(None) is None


def test_json_formatter_drops_codes_from_extras():
    record = logging.makeLogRecord({
        "name": "eventauth.auth",
        "msg": "otp.verify.failed",
        "levelname": "WARNING",
        "levelno": logging.WARNING,
        "email": "member@example.com",
        "otp": "482913",
        "attempts": 2,
    })
    data = orjson.loads(JSONFormatter().format(record))

    assert data["message"] == "otp.verify.failed"
    assert data["attempts"] == 2
    assert "otp" not in data
