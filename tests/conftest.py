"""Pytest configuration and fixtures."""

import json
from datetime import datetime, timezone
from typing import Dict, Optional

import pytest
from loguru import logger

from netbird_msp.api_client import NetBirdClient
from netbird_msp.config import Settings, get_default_config

BASE_URL = "https://api.test/api"
GENERATED_AT = datetime(2026, 10, 19, 8, 30, 0, tzinfo=timezone.utc)


class FakeResponse:
    """Just enough of requests.Response for NetBirdClient"""

    def __init__(self, status_code: int = 200, body=None, text: Optional[str] = None):
        self.status_code = status_code
        if text is None:
            text = "" if body is None else json.dumps(body)
        self.text = text

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """
    Scripted stand-in for requests.Session.

    Routes are keyed by endpoint path, with "?account=<id>" appended when the
    call carries an account parameter. A route value is a FakeResponse or an
    exception instance to raise. Unknown routes answer HTTP 404.
    """

    def __init__(self, routes: Dict):
        self.routes = routes
        self.headers: Dict[str, str] = {}
        self.calls = []
        self.closed = False

    def get(self, url, params=None, timeout=None):
        path = url[len(BASE_URL) + 1:]
        params = dict(params or {})
        self.calls.append((path, params))
        key = f"{path}?account={params['account']}" if "account" in params else path
        route = self.routes.get(key)
        if route is None:
            return FakeResponse(404, {"message": "not found"})
        if isinstance(route, Exception):
            raise route
        return route

    def close(self):
        self.closed = True


def ok(body) -> FakeResponse:
    return FakeResponse(200, body)


def fail(status_code: int) -> FakeResponse:
    return FakeResponse(status_code, {"message": "error"})


@pytest.fixture
def make_client():
    def _make(routes: Dict) -> NetBirdClient:
        return NetBirdClient(api_token="test-token", base_url=BASE_URL, session=FakeSession(routes))

    return _make


@pytest.fixture
def settings(tmp_path) -> Settings:
    cfg = get_default_config()
    cfg["api"]["base_url"] = BASE_URL
    cfg["output"]["directory"] = str(tmp_path / "reports")
    return Settings(api_token="test-token", cfg=cfg)


@pytest.fixture
def log_messages():
    """Capture loguru messages emitted during the test"""
    messages = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def acme_users():
    return [
        {
            "name": "Alice Admin",
            "email": "alice@acme.test",
            "role": "admin",
            "last_login": "2026-10-01T09:00:00Z",
            "status": "active",
            "is_blocked": False,
        },
        {
            "email": "bob@acme.test",
            "last_login": "0001-01-01T00:00:00Z",
            "status": "active",
            "is_blocked": False,
        },
        {
            "name": "Carol Blocked",
            "email": "carol@acme.test",
            "role": "user",
            "status": "active",
            "is_blocked": True,
        },
    ]


@pytest.fixture
def two_tenant_routes(acme_users):
    """One active tenant (3 users, 2 counted, 2 billable) and one inactive tenant"""
    return {
        "integrations/msp/tenants": ok([
            {"id": "t-1", "name": "Acme", "domain": "acme.test", "status": "active"},
            {"id": "t-2", "name": "Dormant", "domain": "dormant.test", "status": "inactive"},
        ]),
        "integrations/billing/subscription?account=t-1": ok({"plan_tier": "business"}),
        "integrations/billing/subscription?account=t-2": ok({"plan_tier": "team"}),
        "users?account=t-1": ok(acme_users),
        "integrations/billing/usage?account=t-1": ok({
            "active_users": 2,
            "active_peers": 5,
            "total_users": 3,
            "total_peers": 7,
        }),
    }
