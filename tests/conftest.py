from __future__ import annotations

import os

# Keep the module-level engine off the on-disk database during tests
os.environ.setdefault("DATABASE_URL", "sqlite://")

from collections.abc import Callable
from typing import Any

import pytest
from sqlalchemy.orm import Session, sessionmaker

from mm_sms.db import init_db, make_engine
from mm_sms.messagemedia_client import ApiRequest
from mm_sms.provider import DEFAULT_BASE_URL, MessageMediaProvider


class FakeHttpClient:
    """
    Records every ApiRequest and answers from canned responses keyed by
    (method, path). A list value is consumed one item per call; an exception
    value is raised.
    """

    def __init__(self, responses: dict[tuple[str, str], Any] | None = None) -> None:
        self.responses = responses or {}
        self.requests: list[ApiRequest] = []

    def execute(self, request: ApiRequest) -> Any:
        self.requests.append(request)
        key = (request.method, request.url.removeprefix(DEFAULT_BASE_URL))
        response = self.responses.get(key)
        if isinstance(response, list):
            response = response.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def http_client() -> FakeHttpClient:
    return FakeHttpClient(
        {
            ("POST", "/v1/messages"): {"messages": [{"message_id": "msg-123", "status": "queued"}]},
            ("POST", "/v1/blacklist/numbers"): {"numbers": []},
        }
    )


@pytest.fixture
def provider(http_client: FakeHttpClient) -> MessageMediaProvider:
    return MessageMediaProvider(http_client)


@pytest.fixture
def session_factory() -> Callable[[], Session]:
    engine = make_engine("sqlite://")
    init_db(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory: Callable[[], Session]):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
