from datetime import datetime, timezone

from fastapi import Request

from app.infra.backend import BackendClient
from app.settings import Settings


def get_settings(request: Request) -> Settings:
    return request.app.state.app_settings


def get_backend_client(request: Request) -> BackendClient:
    return request.app.state.backend


def get_now() -> datetime:
    return datetime.now(tz=timezone.utc)
