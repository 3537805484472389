from __future__ import annotations

from collections.abc import Callable

import pytest
from conftest import FakeHttpClient
from sqlalchemy.orm import Session

from mm_sms.errors import ProviderHttpError, WebhookError
from mm_sms.provider import MessageMediaProvider
from mm_sms.trigger import (
    WebhookRecord,
    WebhookState,
    WebhookStore,
    WebhookTrigger,
    next_state,
    sample_event,
    to_event,
)

HOOK_URL = "https://example.com/webhooks/messagemedia"


def _trigger(
    session_factory: Callable[[], Session], responses: dict | None = None
) -> tuple[WebhookTrigger, FakeHttpClient]:
    client = FakeHttpClient(responses)
    return WebhookTrigger(MessageMediaProvider(client), WebhookStore(session_factory)), client


def _registered(session_factory: Callable[[], Session], webhook_id: str = "wh-1") -> WebhookStore:
    store = WebhookStore(session_factory)
    store.save(WebhookRecord(WebhookState.REGISTERED, webhook_id, HOOK_URL))
    return store


def test_transition_table() -> None:
    assert next_state(WebhookState.ABSENT, "create") is WebhookState.REGISTERING
    assert next_state(WebhookState.REGISTERING, "created") is WebhookState.REGISTERED
    assert next_state(WebhookState.REGISTERING, "create_failed") is WebhookState.ABSENT
    assert next_state(WebhookState.REGISTERED, "delete") is WebhookState.DELETING
    assert next_state(WebhookState.DELETING, "deleted") is WebhookState.ABSENT
    assert next_state(WebhookState.REGISTERED, "missing") is WebhookState.ABSENT
    assert next_state(WebhookState.DELETING, "exists") is WebhookState.REGISTERED


@pytest.mark.parametrize(
    "state, event",
    [
        (WebhookState.ABSENT, "delete"),
        (WebhookState.ABSENT, "created"),
        (WebhookState.REGISTERED, "create"),
        (WebhookState.REGISTERED, "created"),
    ],
)
def test_illegal_transitions(state: WebhookState, event: str) -> None:
    with pytest.raises(WebhookError, match="Illegal webhook transition"):
        next_state(state, event)


def test_store_defaults_to_absent(session_factory: Callable[[], Session]) -> None:
    record = WebhookStore(session_factory).load()
    assert record == WebhookRecord()


def test_create_registers_and_persists(session_factory: Callable[[], Session]) -> None:
    trigger, client = _trigger(session_factory, {("POST", "/v1/webhooks/messages"): {"id": "wh-1"}})

    record = trigger.create(HOOK_URL)

    assert record.state is WebhookState.REGISTERED
    assert record.webhook_id == "wh-1"
    assert client.requests[0].body["url"] == HOOK_URL
    stored = WebhookStore(session_factory).load()
    assert stored == WebhookRecord(WebhookState.REGISTERED, "wh-1", HOOK_URL)


def test_create_failure_returns_to_absent(session_factory: Callable[[], Session]) -> None:
    trigger, _ = _trigger(
        session_factory,
        {("POST", "/v1/webhooks/messages"): ProviderHttpError("Bad Request", status_code=400)},
    )

    with pytest.raises(WebhookError, match="Failed to create webhook"):
        trigger.create(HOOK_URL)

    assert trigger.state().state is WebhookState.ABSENT


def test_create_without_id_is_a_failure(session_factory: Callable[[], Session]) -> None:
    trigger, _ = _trigger(session_factory, {("POST", "/v1/webhooks/messages"): {}})

    with pytest.raises(WebhookError):
        trigger.create(HOOK_URL)

    assert trigger.state() == WebhookRecord()


def test_create_when_registered_is_illegal(session_factory: Callable[[], Session]) -> None:
    _registered(session_factory)
    trigger, client = _trigger(session_factory)

    with pytest.raises(WebhookError, match="Illegal webhook transition"):
        trigger.create(HOOK_URL)
    assert client.requests == []


def test_check_exists_without_id(session_factory: Callable[[], Session]) -> None:
    trigger, client = _trigger(session_factory)
    assert trigger.check_exists() is False
    assert client.requests == []


def test_check_exists(session_factory: Callable[[], Session]) -> None:
    _registered(session_factory)
    trigger, client = _trigger(session_factory, {("GET", "/v1/webhooks/messages/wh-1"): {"id": "wh-1"}})

    assert trigger.check_exists() is True
    assert client.requests[0].url.endswith("/v1/webhooks/messages/wh-1")


def test_check_exists_forgets_missing_webhook(session_factory: Callable[[], Session]) -> None:
    _registered(session_factory)
    trigger, _ = _trigger(
        session_factory,
        {("GET", "/v1/webhooks/messages/wh-1"): ProviderHttpError("Not Found", status_code=404)},
    )

    assert trigger.check_exists() is False
    assert trigger.state() == WebhookRecord()


def test_ensure_reuses_live_registration(session_factory: Callable[[], Session]) -> None:
    _registered(session_factory)
    trigger, client = _trigger(session_factory, {("GET", "/v1/webhooks/messages/wh-1"): {"id": "wh-1"}})

    record = trigger.ensure(HOOK_URL)

    assert record.webhook_id == "wh-1"
    assert [r.method for r in client.requests] == ["GET"]


def test_ensure_creates_when_absent(session_factory: Callable[[], Session]) -> None:
    trigger, client = _trigger(session_factory, {("POST", "/v1/webhooks/messages"): {"id": "wh-2"}})

    record = trigger.ensure(HOOK_URL)

    assert record.state is WebhookState.REGISTERED
    assert record.webhook_id == "wh-2"
    assert [r.method for r in client.requests] == ["POST"]


def test_delete_without_id(session_factory: Callable[[], Session]) -> None:
    trigger, client = _trigger(session_factory)
    assert trigger.delete() is True
    assert client.requests == []


def test_delete(session_factory: Callable[[], Session]) -> None:
    _registered(session_factory)
    trigger, client = _trigger(session_factory)

    assert trigger.delete() is True
    assert client.requests[0].method == "DELETE"
    assert trigger.state() == WebhookRecord()


def test_delete_already_gone(session_factory: Callable[[], Session]) -> None:
    _registered(session_factory)
    trigger, _ = _trigger(
        session_factory,
        {("DELETE", "/v1/webhooks/messages/wh-1"): ProviderHttpError("Not Found", status_code=404)},
    )

    assert trigger.delete() is True
    assert trigger.state() == WebhookRecord()


def test_delete_error_still_clears_local_state(session_factory: Callable[[], Session]) -> None:
    _registered(session_factory)
    trigger, _ = _trigger(
        session_factory,
        {("DELETE", "/v1/webhooks/messages/wh-1"): ProviderHttpError("Server Error", status_code=500)},
    )

    assert trigger.delete() is False
    assert trigger.state() == WebhookRecord()


def test_to_event() -> None:
    payload = {
        "id": "abc",
        "date_received": "2024-01-01T00:00:00Z",
        "destination_number": "+61400000000",
        "source_number": "+61437536808",
        "message_content": "STOP",
        "metadata": None,
    }

    event = to_event(payload)

    assert event == {
        "messageId": "abc",
        "from": "+61437536808",
        "to": "+61400000000",
        "message": "STOP",
        "receivedAt": "2024-01-01T00:00:00Z",
        "metadata": {},
        "raw": payload,
    }


def test_sample_event() -> None:
    event = sample_event()
    assert event["messageId"].startswith("sample-msg-")
    assert event["metadata"] == {"sample": True, "testEvent": "manual-trigger"}
    assert event["raw"]["message_content"] == event["message"]


def test_interrupted_delete_recovers_when_webhook_still_exists(
    session_factory: Callable[[], Session],
) -> None:
    store = WebhookStore(session_factory)
    store.save(WebhookRecord(WebhookState.DELETING, "wh-1", HOOK_URL))
    trigger, client = _trigger(session_factory, {("GET", "/v1/webhooks/messages/wh-1"): {"id": "wh-1"}})

    record = trigger.ensure(HOOK_URL)

    assert record == WebhookRecord(WebhookState.REGISTERED, "wh-1", HOOK_URL)
    assert [r.method for r in client.requests] == ["GET"]
    assert trigger.delete() is True
    assert trigger.state() == WebhookRecord()
