# saasguard/core/security.py

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Request
from jose import JWTError, jwt

from saasguard.core.config import settings
from saasguard.core.exceptions import AuthenticationError


# ---------------------------------------------------------------------------
# JWT helpers
# ---------------------------------------------------------------------------

def decode_token(token: str, verify_exp: bool = True) -> Optional[Dict[str, Any]]:
    """
    Decode a JWT and optionally verify exp.

    Returns the payload dict on success, or None on failure.
    """
    options = {"verify_exp": verify_exp}
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            options=options,
        )
        return payload
    except JWTError:
        return None


# ---------------------------------------------------------------------------
# Authorization header helpers
# ---------------------------------------------------------------------------

def get_bearer_token(request: Request) -> str:
    """
    Extract Bearer token from Authorization header.

    This is synchronous; do *not* "await" it.
    """
    auth_header = request.headers.get("authorization")
    if not auth_header:
        raise AuthenticationError("Missing Authorization header")

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthenticationError("Invalid authorization header format")

    return parts[1]
