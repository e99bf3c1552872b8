# saasguard/dependencies/auth_utils.py

"""
Extracts user identity and company context from the request JWT.
"""

from typing import Any, Dict

from fastapi import Request

from saasguard.core.exceptions import AuthenticationError
from saasguard.core.security import get_bearer_token, decode_token


def get_current_token_payload(request: Request) -> Dict[str, Any]:
    """
    FastAPI dependency returning the decoded JWT payload.

    Ensures payload["company_id"] is set if 'cid' or 'company_id' exists.
    """
    token = get_bearer_token(request)
    payload = decode_token(token, verify_exp=True)

    if not payload:
        raise AuthenticationError("Invalid token")

    cid = payload.get("cid") or payload.get("company_id")
    if cid:
        payload["company_id"] = cid

    return payload


def get_current_user_id(request: Request) -> str:
    payload = get_current_token_payload(request)

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("User ID missing from token")

    return user_id
