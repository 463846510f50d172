import logging
import secrets
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from app.infra.auth import verify_password

logger = logging.getLogger(__name__)

security = HTTPBasic(auto_error=False)


@dataclass
class AdminIdentity:
    username: str


def _build_auth_exception(detail: str = "Invalid authentication") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Basic"},
    )


def _authenticate_credentials(credentials: HTTPBasicCredentials | None, app_settings) -> AdminIdentity:
    if not app_settings.admin_password_sha256:
        logger.warning(
            "admin_auth_unconfigured",
            extra={"extra": {"path": "/v1/admin", "username_configured": bool(app_settings.admin_username)}},
        )
        raise _build_auth_exception()

    if not credentials:
        raise _build_auth_exception()

    username_ok = secrets.compare_digest(credentials.username, app_settings.admin_username)
    password_ok = verify_password(credentials.password, app_settings.admin_password_sha256)
    if username_ok and password_ok:
        return AdminIdentity(username=credentials.username)

    logger.info("admin_auth_failed", extra={"extra": {"username": credentials.username}})
    raise _build_auth_exception()


async def require_admin(
    request: Request, credentials: HTTPBasicCredentials | None = Depends(security)
) -> AdminIdentity:
    cached: AdminIdentity | None = getattr(request.state, "admin_identity", None)
    if cached:
        return cached
    identity = _authenticate_credentials(credentials, request.app.state.app_settings)
    request.state.admin_identity = identity
    return identity
