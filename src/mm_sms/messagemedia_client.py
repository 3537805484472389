"""HTTP collaborator used for every MessageMedia API call."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal, Protocol

import requests
from requests.auth import HTTPBasicAuth

from .config import Settings
from .errors import ConfigurationError, ProviderHttpError, redact_value

logger = logging.getLogger(__name__)

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]


@dataclass(frozen=True)
class ApiRequest:
    method: HttpMethod
    url: str
    body: Any = None
    query: dict[str, Any] | None = None


class HttpClient(Protocol):
    """Anything that can run an ApiRequest and return the decoded JSON body."""

    def execute(self, request: ApiRequest) -> Any:
        ...


def _decode(response: requests.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class RequestsHttpClient:
    """
    JSON-over-HTTPS client for the MessageMedia REST API.

    Every request carries HTTP Basic credentials (API key / secret), JSON
    headers and a fixed timeout. Non-2xx responses and transport failures
    are raised as ProviderHttpError; nothing is retried here.
    """

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        timeout: float = 15.0,
        session: requests.Session | None = None,
    ) -> None:
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.auth = HTTPBasicAuth(api_key, api_secret)
        self.session.headers.update(
            {
                "Content-Type": "application/json",
                "Accept": "application/json",
            }
        )

    def execute(self, request: ApiRequest) -> Any:
        logger.debug("%s %s", request.method, request.url)
        try:
            response = self.session.request(
                request.method,
                request.url,
                json=request.body,
                params=request.query,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ProviderHttpError(f"MessageMedia request failed: {e}") from e

        body = _decode(response)
        if not response.ok:
            message = None
            if isinstance(body, dict):
                message = body.get("message")
            message = message or response.reason or "MessageMedia request failed"
            logger.warning(
                "MessageMedia %s %s returned %s: %s",
                request.method,
                request.url,
                response.status_code,
                redact_value(body),
            )
            raise ProviderHttpError(str(message), status_code=response.status_code, body=body)

        return body


def build_http_client(settings: Settings) -> RequestsHttpClient:
    if not settings.messagemedia_api_key or not settings.messagemedia_api_secret:
        raise ConfigurationError(
            "MessageMedia credentials are not configured "
            "(MESSAGEMEDIA_API_KEY / MESSAGEMEDIA_API_SECRET)"
        )

    return RequestsHttpClient(
        settings.messagemedia_api_key,
        settings.messagemedia_api_secret,
        timeout=settings.request_timeout_seconds,
    )
