from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .encoding import EncodingPreference
from .pipeline import SenderSelection, resolve_sender


class InboundSms(BaseModel):
    """MessageMedia RECEIVED_SMS webhook delivery."""

    model_config = ConfigDict(extra="allow")

    id: str
    date_received: str
    destination_number: str
    source_number: str
    message_content: str
    metadata: dict[str, Any] | None = None


class SendSmsRequest(BaseModel):
    to: str
    message: str
    # Account sender number ("" or "use_default" for the account default)
    from_: str = Field(default="", alias="from")
    from_selection: SenderSelection = "account"
    from_custom: str = ""
    encoding: EncodingPreference = "auto"
    default_country: str | None = None
    callback_url: str | None = None
    dry_run: bool = False
    return_raw: bool = False

    model_config = ConfigDict(populate_by_name=True)

    def sender(self) -> str:
        return resolve_sender(self.from_selection, self.from_, self.from_custom)


class BlacklistRequest(BaseModel):
    # One number per line
    numbers: str
    default_country: str | None = None


class SendBatchRequest(BaseModel):
    messages: list[SendSmsRequest]
    # Delay between consecutive sends; falls back to SMS_RATE_LIMIT_MS
    rate_limit_ms: int | None = Field(default=None, ge=0)
    fail_fast: bool = True
    dry_run: bool = False
