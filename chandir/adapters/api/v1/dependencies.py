"""FastAPI dependencies shared by the v1 routes."""

import secrets
from typing import Optional

from fastapi import Depends, Header, Request

from chandir.core.config.settings import settings
from chandir.core.exceptions import PermissionError, ServiceUnavailableError
from chandir.core.middleware import get_client_ip
from chandir.domain.services import DirectoryService

ADMIN_SECRET_HEADER = "X-Admin-Secret"


def get_directory(request: Request) -> DirectoryService:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise ServiceUnavailableError("Service is starting up")
    return container.directory


def client_ip(request: Request) -> Optional[str]:
    return getattr(request.state, "client_ip", None) or get_client_ip(request)


async def require_admin(
    request: Request,
    x_admin_secret: Optional[str] = Header(None, alias=ADMIN_SECRET_HEADER),
    directory: DirectoryService = Depends(get_directory),
) -> None:
    """Check the shared admin secret, then count the call against the admin limit.

    With no secret configured every admin call is rejected.
    """
    expected = settings.ADMIN_SECRET.get_secret_value()
    if not expected or not x_admin_secret:
        raise PermissionError()
    if not secrets.compare_digest(x_admin_secret.encode(), expected.encode()):
        raise PermissionError()
    await directory.check_admin_rate(client_ip(request) or "admin")
