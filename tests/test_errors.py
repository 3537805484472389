from __future__ import annotations

import io
import logging

from mm_sms.errors import ProviderHttpError, SmsError, ValidationError, redact_value
from mm_sms.logging_utils import configure_logging


def test_error_hierarchy() -> None:
    assert issubclass(ValidationError, SmsError)
    assert issubclass(ProviderHttpError, SmsError)
    assert ValidationError("bad", code="InvalidNumber").code == "InvalidNumber"


def test_provider_error_str() -> None:
    assert str(ProviderHttpError("Unauthorized", status_code=401)) == "Unauthorized (status 401)"
    assert str(ProviderHttpError("timed out")) == "timed out"


def test_redact_value() -> None:
    body = {
        "message": "Bad auth",
        "api_key": "abc",
        "Authorization": "Basic dXNlcjpwYXNz",
        "detail": ["token c2VjcmV0c2VjcmV0"],
        "count": 3,
    }

    assert redact_value(body) == {
        "message": "Bad auth",
        "api_key": "***",
        "Authorization": "***",
        "detail": ["token ***"],
        "count": 3,
    }
    assert redact_value(None) is None


def test_configure_logging_installs_one_handler() -> None:
    stream = io.StringIO()
    configure_logging("DEBUG", stream=stream)
    configure_logging("DEBUG", stream=stream)

    root = logging.getLogger()
    assert len(root.handlers) == 1
    logging.getLogger("mm_sms.test").info("hello")
    assert "[INFO] [mm_sms.test] hello" in stream.getvalue()


def test_redact_masks_long_opaque_runs() -> None:
    assert redact_value("Invalid credentials") == "Invalid ***"
