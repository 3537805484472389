from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any, Final, Literal

from sqlalchemy.orm import Session

from .db import Message
from .encoding import Encoding, EncodingPreference, count_segments, detect_encoding
from .errors import ConfigurationError, ProviderHttpError, SmsError, ValidationError
from .phone import Normalizer, StrictE164Normalizer
from .provider import MessageMediaProvider

logger = logging.getLogger(__name__)

MAX_MESSAGE_CHARS: Final[int] = 1600
DEFAULT_ACCOUNT_NUMBER: Final[str] = "default_account_number"
USE_DEFAULT_SENDER: Final[str] = "use_default"

SenderSelection = Literal["account", "custom"]


def utcnow_iso() -> str:
    return datetime.now(UTC).isoformat()


@dataclass
class SmsMeta:
    encoding: str
    segments: int
    queued_at: str
    rate_limit_applied_ms: int = 0
    cost: dict[str, Any] = field(default_factory=lambda: {"currency": "USD", "amount": 0})


@dataclass
class SmsOutputItem:
    to: str
    from_: str
    message: str
    status: str  # "queued" / "sent" / "failed"
    meta: SmsMeta
    provider_message_id: str | None = None
    error: str | None = None
    raw: Any = None
    provider: str = "MessageMedia"

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["from"] = data.pop("from_")
        if data["raw"] is None:
            data.pop("raw")
        return data


@dataclass
class SendRequest:
    to: str
    message: str
    from_: str = ""
    encoding: EncodingPreference = "auto"
    default_country: str | None = None
    callback_url: str | None = None


@dataclass
class BlacklistResult:
    numbers: list[str]
    response: Any = None
    success: bool = True

    @property
    def numbers_added(self) -> int:
        return len(self.numbers)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "numbersAdded": self.numbers_added,
            "numbers": self.numbers,
            "response": self.response,
        }


def split_number_lines(text: str) -> list[str]:
    return [line.strip() for line in (text or "").splitlines() if line.strip()]


def resolve_sender(
    selection: SenderSelection = "account",
    account_number: str = "",
    custom_number: str = "",
) -> str:
    """
    Raw sender for a send request. An "account" selection of "" or
    "use_default" leaves the choice to MessageMedia; a "custom" selection
    must name a number.
    """
    if selection == "account":
        if not account_number or account_number == USE_DEFAULT_SENDER:
            return ""
        return account_number
    if selection == "custom":
        if not custom_number or not custom_number.strip():
            raise ValidationError(
                'Custom sender phone number is required when using "Custom Number" option.'
            )
        return custom_number
    raise ValidationError(f"Unknown sender selection: {selection!r}")


class SmsRequestAssembler:
    """
    Validate, normalize and forward outbound SMS and blacklist requests.

    Validation always runs before any network call; a validation failure
    rejects the whole operation with a ValidationError.
    """

    def __init__(
        self,
        provider: MessageMediaProvider | None,
        normalizer: Normalizer | None = None,
        db: Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.provider = provider
        self.normalizer = normalizer or StrictE164Normalizer()
        self.db = db
        self.sleep = sleep

    def _require_provider(self) -> MessageMediaProvider:
        if self.provider is None:
            raise ConfigurationError("No MessageMedia provider configured; only dry runs are possible")
        return self.provider

    # --- Validation helpers ---

    def _normalize(self, raw: str, default_country: str | None) -> str:
        result = self.normalizer.normalize(raw, default_country)
        if not result.ok:
            raise ValidationError(f"Invalid phone number: {result.error}", code=result.code.value)
        return result.value

    def _normalize_sender(self, raw: str, default_country: str | None) -> str:
        # Blank sender: MessageMedia picks the account default number
        if not raw or not raw.strip():
            return ""
        return self._normalize(raw, default_country)

    @staticmethod
    def _check_length(message: str) -> None:
        # Counted in UTF-16 code units, like the provider
        units = len(message.encode("utf-16-le")) // 2
        if units == 0 or units > MAX_MESSAGE_CHARS:
            raise ValidationError(f"Message must be between 1 and {MAX_MESSAGE_CHARS} characters")

    # --- Send ---

    def send(
        self,
        to: str,
        message: str,
        from_: str = "",
        encoding: EncodingPreference = "auto",
        default_country: str | None = None,
        callback_url: str | None = None,
        dry_run: bool = False,
        return_raw: bool = False,
        rate_limit_applied_ms: int = 0,
    ) -> SmsOutputItem:
        message = message or ""
        try:
            chosen = detect_encoding(message, encoding)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        self._check_length(message)

        to_number = self._normalize(to, default_country)
        from_number = self._normalize_sender(from_, default_country)

        meta = SmsMeta(
            encoding=chosen.value,
            segments=count_segments(message, chosen),
            queued_at=utcnow_iso(),
            rate_limit_applied_ms=rate_limit_applied_ms,
        )

        if dry_run:
            logger.info("Dry run: SMS to %s validated, not sent", to_number)
            return SmsOutputItem(
                to=to_number,
                from_=from_number,
                message=message,
                status="queued",
                provider_message_id=f"sandbox_{int(time.time() * 1000)}",
                meta=meta,
            )

        result = self._require_provider().send(to_number, from_number, message, callback_url=callback_url)
        logger.info(
            "SMS to %s queued (id=%s, encoding=%s, segments=%d)",
            to_number,
            result.provider_message_id,
            chosen.value,
            meta.segments,
        )
        self._record(to_number, from_number, message, chosen, result.provider_message_id, result.status)

        return SmsOutputItem(
            to=to_number,
            from_=from_number or DEFAULT_ACCOUNT_NUMBER,
            message=message,
            status=result.status,
            provider_message_id=result.provider_message_id,
            error=result.error,
            raw=result.raw if return_raw else None,
            meta=meta,
        )

    def send_batch(
        self,
        requests: Sequence[SendRequest],
        rate_limit_ms: int = 0,
        fail_fast: bool = True,
        dry_run: bool = False,
    ) -> list[SmsOutputItem]:
        """
        Send each request in order, pausing rate_limit_ms between
        consecutive sends. With fail_fast=False, a failing item is reported
        with status "failed" and the batch carries on.
        """
        outputs: list[SmsOutputItem] = []
        for index, req in enumerate(requests):
            if rate_limit_ms > 0 and index > 0:
                self.sleep(rate_limit_ms / 1000)

            try:
                outputs.append(
                    self.send(
                        req.to,
                        req.message,
                        from_=req.from_,
                        encoding=req.encoding,
                        default_country=req.default_country,
                        callback_url=req.callback_url,
                        dry_run=dry_run,
                        rate_limit_applied_ms=rate_limit_ms,
                    )
                )
            except (ValidationError, ProviderHttpError) as e:
                if fail_fast:
                    raise
                logger.warning("SMS %d to %s failed: %s", index, req.to, e)
                outputs.append(self._failed_output(req, e, rate_limit_ms))
        return outputs

    def _failed_output(self, req: SendRequest, error: SmsError, rate_limit_ms: int) -> SmsOutputItem:
        try:
            chosen = detect_encoding(req.message or "", req.encoding)
        except ValueError:
            chosen = Encoding.GSM7
        return SmsOutputItem(
            to=req.to,
            from_=req.from_ if req.from_.strip() else DEFAULT_ACCOUNT_NUMBER,
            message=req.message,
            status="failed",
            error=str(error),
            meta=SmsMeta(
                encoding=chosen.value,
                segments=count_segments(req.message or "", chosen),
                queued_at=utcnow_iso(),
                rate_limit_applied_ms=rate_limit_ms,
            ),
        )

    def _record(
        self,
        to_number: str,
        from_number: str,
        message: str,
        encoding: Encoding,
        provider_message_id: str | None,
        status: str,
    ) -> None:
        if self.db is None:
            return
        self.db.add(
            Message(
                direction="out",
                source_number=from_number or None,
                destination_number=to_number,
                text=message,
                encoding=encoding.value,
                provider_message_id=provider_message_id,
                status=status,
            )
        )
        self.db.commit()

    # --- Blacklist ---

    def add_to_blacklist(
        self,
        numbers: str | Iterable[str],
        default_country: str | None = None,
    ) -> BlacklistResult:
        """
        Normalize every line and submit them in one call. A single invalid
        line rejects the whole batch before anything is sent.
        """
        lines = split_number_lines(numbers) if isinstance(numbers, str) else [
            n.strip() for n in numbers if n and n.strip()
        ]
        if not lines:
            raise ValidationError("At least one phone number is required")

        normalized: list[str] = []
        for line in lines:
            result = self.normalizer.normalize(line, default_country)
            if not result.ok:
                raise ValidationError(
                    f'Invalid phone number "{line}": {result.error}', code=result.code.value
                )
            normalized.append(result.value)

        try:
            response = self._require_provider().add_to_blacklist(normalized)
        except ProviderHttpError as e:
            raise ProviderHttpError(
                f"Failed to add numbers to blacklist: {e.args[0]}",
                status_code=e.status_code,
                body=e.body,
            ) from e

        logger.info("Added %d number(s) to blacklist", len(normalized))
        return BlacklistResult(numbers=normalized, response=response)
