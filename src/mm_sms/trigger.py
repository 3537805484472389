"""
Inbound SMS trigger: webhook registration lifecycle and event formatting.

The registration is a small state machine persisted in the
webhook_registrations table:

    ABSENT --create--> REGISTERING --created--> REGISTERED
                       REGISTERING --create_failed--> ABSENT
    REGISTERED --delete--> DELETING --deleted--> ABSENT
    REGISTERED --missing--> ABSENT
    REGISTERING --create--> REGISTERING (retry after an interrupted create)
    DELETING --delete--> DELETING, DELETING --missing--> ABSENT
    DELETING --exists--> REGISTERED (the remote webhook survived a delete)

Create failures are raised. Existence checks and deletes are advisory: on
any provider error the locally stored webhook id is forgotten.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Final

from sqlalchemy.orm import Session

from .db import WebhookRegistration
from .errors import ProviderHttpError, WebhookError
from .provider import MessageMediaProvider

logger = logging.getLogger(__name__)


class WebhookState(str, Enum):
    ABSENT = "absent"
    REGISTERING = "registering"
    REGISTERED = "registered"
    DELETING = "deleting"


TRANSITIONS: Final[dict[tuple[WebhookState, str], WebhookState]] = {
    (WebhookState.ABSENT, "create"): WebhookState.REGISTERING,
    (WebhookState.REGISTERING, "created"): WebhookState.REGISTERED,
    (WebhookState.REGISTERING, "create_failed"): WebhookState.ABSENT,
    (WebhookState.REGISTERED, "delete"): WebhookState.DELETING,
    (WebhookState.DELETING, "deleted"): WebhookState.ABSENT,
    (WebhookState.REGISTERED, "missing"): WebhookState.ABSENT,
    # An interrupted create or delete can be retried; a half-deleted one can be found gone
    (WebhookState.REGISTERING, "create"): WebhookState.REGISTERING,
    (WebhookState.DELETING, "delete"): WebhookState.DELETING,
    (WebhookState.DELETING, "missing"): WebhookState.ABSENT,
    (WebhookState.DELETING, "exists"): WebhookState.REGISTERED,
}


def next_state(state: WebhookState, event: str) -> WebhookState:
    try:
        return TRANSITIONS[(state, event)]
    except KeyError:
        raise WebhookError(f"Illegal webhook transition: {state.value} --{event}-->") from None


@dataclass
class WebhookRecord:
    state: WebhookState = WebhookState.ABSENT
    webhook_id: str | None = None
    webhook_url: str | None = None


class WebhookStore:
    """Persists the registration record for one named trigger."""

    def __init__(self, session_factory: Callable[[], Session], name: str = "default") -> None:
        self.session_factory = session_factory
        self.name = name

    def load(self) -> WebhookRecord:
        db = self.session_factory()
        try:
            row = db.get(WebhookRegistration, self.name)
            if row is None:
                return WebhookRecord()
            return WebhookRecord(
                state=WebhookState(row.state),
                webhook_id=row.webhook_id,
                webhook_url=row.webhook_url,
            )
        finally:
            db.close()

    def save(self, record: WebhookRecord) -> None:
        db = self.session_factory()
        try:
            row = db.get(WebhookRegistration, self.name)
            if row is None:
                row = WebhookRegistration(name=self.name, state=record.state.value)
                db.add(row)
            row.state = record.state.value
            row.webhook_id = record.webhook_id
            row.webhook_url = record.webhook_url
            db.commit()
        finally:
            db.close()


class WebhookTrigger:
    def __init__(self, provider: MessageMediaProvider, store: WebhookStore) -> None:
        self.provider = provider
        self.store = store

    def _transition(self, record: WebhookRecord, event: str) -> WebhookRecord:
        new_state = next_state(record.state, event)
        logger.info("Webhook %s: %s -> %s", self.store.name, record.state.value, new_state.value)
        record.state = new_state
        if new_state is WebhookState.ABSENT:
            record.webhook_id = None
            record.webhook_url = None
        self.store.save(record)
        return record

    def state(self) -> WebhookRecord:
        return self.store.load()

    def check_exists(self) -> bool:
        record = self.store.load()
        if not record.webhook_id:
            return False

        try:
            self.provider.get_webhook(record.webhook_id)
        except ProviderHttpError as e:
            logger.warning(
                "Webhook %s does not exist or could not be checked (status=%s): %s",
                record.webhook_id,
                e.status_code,
                e,
            )
            self._transition(record, "missing")
            return False

        if record.state is WebhookState.DELETING:
            self._transition(record, "exists")
        logger.info("Webhook %s exists", record.webhook_id)
        return True

    def create(self, url: str) -> WebhookRecord:
        record = self.store.load()
        self._transition(record, "create")

        try:
            response = self.provider.create_webhook(url)
        except ProviderHttpError as e:
            logger.error("Webhook creation failed (status=%s): %s", e.status_code, e)
            self._transition(record, "create_failed")
            raise WebhookError(f"Failed to create webhook: {e}") from e

        webhook_id = response.get("id") if isinstance(response, Mapping) else None
        if not webhook_id:
            self._transition(record, "create_failed")
            raise WebhookError("Failed to create webhook: response did not include an id")

        record.webhook_id = str(webhook_id)
        record.webhook_url = url
        self._transition(record, "created")
        logger.info("Webhook %s registered for %s", record.webhook_id, url)
        return record

    def ensure(self, url: str) -> WebhookRecord:
        """Register the webhook unless a live registration is already stored."""
        if self.check_exists():
            return self.store.load()
        return self.create(url)

    def delete(self) -> bool:
        """
        Remove the remote webhook. Returns False only when the provider
        reported an error other than 404; local state is cleared either way.
        """
        record = self.store.load()
        if not record.webhook_id:
            logger.debug("No webhook id stored; nothing to delete")
            return True

        webhook_id = record.webhook_id
        self._transition(record, "delete")

        try:
            self.provider.delete_webhook(webhook_id)
        except ProviderHttpError as e:
            self._transition(record, "deleted")
            if e.status_code == 404:
                logger.info("Webhook %s already deleted", webhook_id)
                return True
            logger.warning(
                "Error deleting webhook %s (status=%s); local data cleared: %s",
                webhook_id,
                e.status_code,
                e,
            )
            return False

        self._transition(record, "deleted")
        logger.info("Webhook %s deleted", webhook_id)
        return True


def to_event(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Normalized event record for an inbound MessageMedia delivery."""
    return {
        "messageId": payload.get("id"),
        "from": payload.get("source_number"),
        "to": payload.get("destination_number"),
        "message": payload.get("message_content"),
        "receivedAt": payload.get("date_received"),
        "metadata": payload.get("metadata") or {},
        "raw": dict(payload),
    }


def sample_event() -> dict[str, Any]:
    """A representative event for manual testing of downstream consumers."""
    payload = {
        "id": f"sample-msg-{uuid.uuid4().hex[:8]}",
        "date_received": datetime.now(UTC).isoformat(),
        "destination_number": "+1234567890",
        "source_number": "+61437536808",
        "message_content": "This is a sample test SMS message from MessageMedia",
        "metadata": {"sample": True, "testEvent": "manual-trigger"},
    }
    return to_event(payload)
