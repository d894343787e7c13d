"""HTTP basic auth for the dashboard."""

from __future__ import annotations

import hmac
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

REALM = "Rescan UI"

security = HTTPBasic(realm=REALM, auto_error=False)


def credentials_match(
    credentials: Optional[HTTPBasicCredentials], username: str, password: str
) -> bool:
    """Compare credentials in constant time."""
    if credentials is None:
        return False
    user_ok = hmac.compare_digest(
        credentials.username.encode("utf-8"), username.encode("utf-8")
    )
    pass_ok = hmac.compare_digest(
        credentials.password.encode("utf-8"), password.encode("utf-8")
    )
    return user_ok and pass_ok


def require_auth(
    request: Request,
    credentials: Optional[HTTPBasicCredentials] = Depends(security),
) -> None:
    """Reject the request unless auth is disabled or the credentials match."""
    webui = request.app.state.config.webui
    if not webui.auth_enabled:
        return
    if credentials_match(credentials, webui.username, webui.password):
        return
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid credentials",
        headers={"WWW-Authenticate": f'Basic realm="{REALM}"'},
    )
