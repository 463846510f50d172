import base64
import json
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from urllib.parse import parse_qsl

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import httpx
import pytest
from fastapi.testclient import TestClient

from app.dependencies import get_now
from app.infra.auth import hash_password
from app.infra.backend import BackendClient
from app.main import create_app
from app.settings import Settings

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "paddle-hard"
FIXED_NOW = datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc)


@dataclass
class RecordedRequest:
    method: str
    path: str
    params: list[tuple[str, str]]
    body: Any
    headers: dict[str, str]

    def param(self, name: str) -> list[str]:
        return [value for key, value in self.params if key == name]


@dataclass
class FakeBackend:
    """In-memory stand-in for the hosted store, served through httpx.MockTransport.

    Only ``eq.`` and ``in.(...)`` filters on plain columns are applied to the
    stored rows; range filters are recorded for assertions but not evaluated.
    """

    tables: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    counts: dict[str, int] = field(default_factory=dict)
    functions: dict[str, tuple[int, Any]] = field(default_factory=dict)
    failures: dict[str, tuple[int, Any]] = field(default_factory=dict)
    requests: list[RecordedRequest] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        params = parse_qsl(request.url.query.decode(), keep_blank_values=True)
        body = json.loads(request.content) if request.content else None
        path = request.url.path
        self.requests.append(
            RecordedRequest(request.method, path, params, body, dict(request.headers))
        )

        if path.startswith("/functions/v1/"):
            name = path.rsplit("/", 1)[1]
            status_code, payload = self.functions.get(name, (200, {"ok": True}))
            return httpx.Response(status_code, json=payload)

        table = path.rsplit("/", 1)[1]
        if table in self.failures:
            status_code, payload = self.failures[table]
            return httpx.Response(status_code, json=payload)
        if request.method == "HEAD":
            total = self.counts.get(table, 0)
            return httpx.Response(200, headers={"Content-Range": f"0-0/{total}" if total else "*/0"})
        if request.method == "PATCH":
            return httpx.Response(200, json=[body])

        rows = [row for row in self.tables.get(table, []) if _matches(row, params)]
        limit = dict(params).get("limit")
        if limit is not None:
            rows = rows[: int(limit)]
        return httpx.Response(200, json=rows)

    def calls(self, method: str, path: str) -> list[RecordedRequest]:
        return [item for item in self.requests if item.method == method and item.path == path]


def _matches(row: dict[str, Any], params: list[tuple[str, str]]) -> bool:
    for column, expression in params:
        if column in {"select", "order", "limit"} or "." in column:
            continue
        value = "" if row.get(column) is None else str(row.get(column))
        if expression.startswith("eq.") and value != expression[3:]:
            return False
        if expression.startswith("in.(") and value not in expression[4:-1].split(","):
            return False
    return True


def basic_auth(username: str = ADMIN_USERNAME, password: str = ADMIN_PASSWORD) -> dict[str, str]:
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


@pytest.fixture()
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def backend_client(fake_backend) -> BackendClient:
    return BackendClient(
        base_url="http://backend.test",
        api_key="test-key",
        transport=httpx.MockTransport(fake_backend.handler),
    )


@pytest.fixture()
def app_settings() -> Settings:
    return Settings(
        _env_file=None,
        app_env="dev",
        testing=True,
        backend_url="http://backend.test",
        backend_api_key="test-key",
        admin_username=ADMIN_USERNAME,
        admin_password_sha256=hash_password(ADMIN_PASSWORD),
        metrics_enabled=True,
        metrics_token=None,
    )


@pytest.fixture()
def test_app(app_settings, backend_client):
    app = create_app(app_settings, backend=backend_client)
    app.dependency_overrides[get_now] = lambda: FIXED_NOW
    return app


@pytest.fixture()
def client(test_app):
    with TestClient(test_app, headers=basic_auth()) as test_client:
        yield test_client


@pytest.fixture()
def client_no_raise(test_app):
    """Test client that returns HTTP responses instead of raising server exceptions."""

    with TestClient(test_app, headers=basic_auth(), raise_server_exceptions=False) as test_client:
        yield test_client
