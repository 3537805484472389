"""Exception types shared by the sender, the blacklist path and the webhook trigger."""

from __future__ import annotations

import re
from typing import Any

_SENSITIVE_KEY_RE = re.compile(r"token|secret|password|authorization|auth|key", re.IGNORECASE)
_OPAQUE_RUN_RE = re.compile(r"[A-Za-z0-9+/=]{8,}")


class SmsError(Exception):
    """Base class for every error raised by mm_sms."""


class ConfigurationError(SmsError):
    """Credentials or settings are missing or inconsistent."""


class ValidationError(SmsError):
    """Local input validation failed; never retried, never sent to the provider."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


class ProviderHttpError(SmsError):
    """
    The MessageMedia API answered with a non-2xx status, or the request
    never completed (status_code is None in that case).
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is None:
            return base
        return f"{base} (status {self.status_code})"


class WebhookError(SmsError):
    """Webhook registration failed or a lifecycle transition was not allowed."""


def redact_value(value: Any) -> Any:
    """Mask credentials and opaque tokens before a value is logged or echoed back."""
    if value is None:
        return None
    if isinstance(value, str):
        return _OPAQUE_RUN_RE.sub("***", value)
    if isinstance(value, (list, tuple)):
        return [redact_value(v) for v in value]
    if isinstance(value, dict):
        out: dict[str, Any] = {}
        for k, v in value.items():
            if _SENSITIVE_KEY_RE.search(str(k)):
                out[k] = "***"
            else:
                out[k] = redact_value(v)
        return out
    return value
