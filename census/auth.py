"""Shared-secret gate for the result endpoints.

In production every submit, raw read and processing trigger must carry the
configured password verbatim in the ``Authorization`` header. Outside
production the gate is open.
"""

import hmac

from fastapi import Depends, Header, HTTPException, status

from census.config import Settings, get_settings
from census.exceptions import AccessDeniedError


def check_access(authorization: str | None, settings: Settings) -> None:
    """Validate an ``Authorization`` header value against the settings.

    Raises:
        AccessDeniedError: In production, when the header is missing or does
            not match ``access_control_password`` (an empty password matches
            nothing).
    """
    if not settings.production:
        return
    expected = settings.access_control_password
    if not expected or authorization is None:
        raise AccessDeniedError("Incorrect password")
    if not hmac.compare_digest(authorization.encode("utf-8"), expected.encode("utf-8")):
        raise AccessDeniedError("Incorrect password")


def require_access(
    authorization: str | None = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Dependency enforcing ``check_access`` on a route."""
    try:
        check_access(authorization, settings)
    except AccessDeniedError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
