from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final

from .errors import ProviderHttpError
from .messagemedia_client import ApiRequest, HttpClient

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL: Final[str] = "https://api.messagemedia.com"
MAX_SENDER_ADDRESS_PAGES: Final[int] = 10
RECEIVED_SMS_EVENT: Final[str] = "RECEIVED_SMS"

DEFAULT_SENDER_OPTION: Final[dict[str, str]] = {
    "name": "Use Account Default",
    "value": "",
    "description": "Use the default sender number configured on your MessageMedia account",
}


@dataclass
class ProviderSendResult:
    status: str
    provider_message_id: str | None = None
    raw: Any = None
    error: str | None = None


class MessageMediaProvider:
    """Thin wrapper over the MessageMedia endpoints this package uses."""

    name: Final[str] = "MessageMedia"

    def __init__(self, client: HttpClient, base_url: str = DEFAULT_BASE_URL) -> None:
        self.client = client
        self.base_url = base_url.rstrip("/")

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    # --- Messages ---

    def send(
        self,
        to: str,
        from_: str,
        message: str,
        callback_url: str | None = None,
    ) -> ProviderSendResult:
        message_obj: dict[str, Any] = {
            "content": message,
            "destination_number": to,
        }
        # Blank sender: let MessageMedia use the account default number
        if from_ and from_.strip():
            message_obj["source_number"] = from_
        if callback_url:
            message_obj["callback_url"] = callback_url

        raw = self.client.execute(
            ApiRequest("POST", self._url("/v1/messages"), body={"messages": [message_obj]})
        )

        message_id: str | None = None
        if isinstance(raw, Mapping):
            messages = raw.get("messages") or []
            if messages and isinstance(messages[0], Mapping):
                message_id = messages[0].get("message_id")

        return ProviderSendResult(status="queued", provider_message_id=message_id, raw=raw)

    # --- Blacklist ---

    def add_to_blacklist(self, numbers: Sequence[str]) -> Any:
        return self.client.execute(
            ApiRequest("POST", self._url("/v1/blacklist/numbers"), body={"numbers": list(numbers)})
        )

    # --- Sender addresses ---

    def list_sender_addresses(self, max_pages: int = MAX_SENDER_ADDRESS_PAGES) -> list[dict[str, Any]]:
        """Collect sender address records, following next_token for at most max_pages."""
        addresses: list[dict[str, Any]] = []
        next_token: str | None = None
        pages = 0

        while True:
            query = {"page_token": next_token} if next_token else {}
            response = self.client.execute(
                ApiRequest(
                    "GET",
                    self._url("/v1/messaging/numbers/sender_address/addresses"),
                    query=query,
                )
            )
            pages += 1

            if isinstance(response, Mapping):
                data = response.get("data")
                if isinstance(data, list):
                    addresses.extend(data)
                pagination = response.get("pagination") or {}
                next_token = pagination.get("next_token")
            else:
                next_token = None

            if not next_token or pages >= max_pages:
                return addresses

    def sender_options(self) -> list[dict[str, str]]:
        """
        Selection options for the "From" field.

        A listing failure is not fatal: the caller still gets the account
        default option.
        """
        try:
            addresses = self.list_sender_addresses()
        except ProviderHttpError as e:
            logger.warning("Could not load sender addresses: %s", e)
            return [
                {
                    "name": "Use Account Default",
                    "value": "",
                    "description": "Error loading numbers - will use account default",
                }
            ]
        return sender_options(addresses)

    # --- Webhooks ---

    def create_webhook(self, url: str) -> dict[str, Any]:
        return self.client.execute(
            ApiRequest(
                "POST",
                self._url("/v1/webhooks/messages"),
                body={
                    "url": url,
                    "method": "POST",
                    "encoding": "JSON",
                    "events": [RECEIVED_SMS_EVENT],
                },
            )
        )

    def get_webhook(self, webhook_id: str) -> Any:
        return self.client.execute(ApiRequest("GET", self._url(f"/v1/webhooks/messages/{webhook_id}")))

    def delete_webhook(self, webhook_id: str) -> Any:
        return self.client.execute(
            ApiRequest("DELETE", self._url(f"/v1/webhooks/messages/{webhook_id}"))
        )


def sender_options(addresses: Iterable[Mapping[str, Any]]) -> list[dict[str, str]]:
    """Turn sender address records into {name, value, description} options."""
    options = [dict(DEFAULT_SENDER_OPTION)]

    for record in addresses:
        phone_number = record.get("sender_address")
        if not phone_number:
            continue
        if record.get("display_status") == "EXPIRED":
            continue

        label = (record.get("label") or "").strip()
        number_info = record.get("number") or {}
        capabilities = number_info.get("capabilities") or []
        number_type = number_info.get("type") or record.get("sender_address_type") or "UNKNOWN"
        countries = record.get("destination_countries") or []

        parts = [", ".join(capabilities) if capabilities else "SMS", f"Type: {number_type}"]
        if countries:
            parts.append(f"Countries: {', '.join(countries)}")

        options.append(
            {
                "name": f"{phone_number} - {label}" if label else phone_number,
                "value": phone_number,
                "description": " | ".join(parts),
            }
        )

    return options
