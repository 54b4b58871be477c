"""Shared test fixtures for the WordPress publisher."""

import json
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests
from requests.structures import CaseInsensitiveDict

# Ensure the package is importable without installation
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from wp_publisher.common.config import PublishingSettings, Settings, TransportConfig
from wp_publisher.common.database import init_db
from wp_publisher.common.models import SiteCredentials
from wp_publisher.transport.http_client import ResilientTransport


def build_response(
    status: int = 200,
    payload=None,
    content: bytes | None = None,
    headers: dict | None = None,
    url: str = "",
) -> requests.Response:
    """A real ``requests.Response`` with canned status, body and headers."""
    response = requests.Response()
    response.status_code = status
    response.url = url
    response.headers = CaseInsensitiveDict(headers or {})
    if content is None:
        content = json.dumps(payload).encode() if payload is not None else b""
        response.headers.setdefault("Content-Type", "application/json")
    response._content = content
    response._content_consumed = True
    response.encoding = "utf-8"
    return response


@pytest.fixture
def make_response():
    """Factory for canned responses."""
    return build_response


@pytest.fixture
def site() -> SiteCredentials:
    return SiteCredentials(url="blog.example", username="a", application_password="b")


@pytest.fixture
def session() -> MagicMock:
    """Stand-in for ``requests.Session``; configure ``request`` per test."""
    fake = MagicMock()
    fake.headers = {}
    return fake


@pytest.fixture
def sleep() -> MagicMock:
    return MagicMock()


@pytest.fixture
def transport_config() -> TransportConfig:
    return TransportConfig()


@pytest.fixture
def transport(transport_config, session, sleep) -> ResilientTransport:
    return ResilientTransport(transport_config, session=session, sleep=sleep)


@pytest.fixture
def app_settings() -> Settings:
    return Settings(transport=TransportConfig(), publishing=PublishingSettings())


@pytest.fixture
def temp_db(tmp_path) -> str:
    """Path to an initialized temporary SQLite database."""
    db_file = tmp_path / "test_wp.db"
    init_db(str(db_file))
    return str(db_file)


def calls_to(session: MagicMock, method: str | None = None) -> list:
    """(method, url, kwargs) for every request the fake session saw."""
    seen = []
    for call in session.request.call_args_list:
        m, url = call.args[0], call.args[1]
        if method is None or m == method:
            seen.append((m, url, call.kwargs))
    return seen


@pytest.fixture
def request_log():
    """Helper that lists the requests a fake session received."""
    return calls_to
