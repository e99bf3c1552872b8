# saasguard/dependencies/database.py

from fastapi import Depends, HTTPException, status
from typing import AsyncGenerator
from saasguard.core.database import db
from saasguard.dependencies.auth_utils import get_current_token_payload


async def get_company_db_connection(
    token_payload: dict = Depends(get_current_token_payload),
) -> AsyncGenerator:
    """
    Company-scoped connection based on the token's company_id claim.
    """
    company_id = token_payload.get("company_id")
    if not company_id:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST,
            "No company associated with this user",
        )

    async for conn in db.get_connection(str(company_id)):
        yield conn
