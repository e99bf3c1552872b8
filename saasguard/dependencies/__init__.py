# saasguard/dependencies/__init__.py

from .database import get_company_db_connection
from .auth_utils import get_current_token_payload, get_current_user_id

__all__ = [
    "get_company_db_connection",
    "get_current_token_payload",
    "get_current_user_id",
]
