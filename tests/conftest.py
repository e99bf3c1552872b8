from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from jose import jwt

from saasguard.core.config import settings
from saasguard.core.encryption import CredentialCipher
from saasguard.main import app

HEX_KEY = "0123456789abcdef" * 4


@pytest.fixture
def hex_key() -> str:
    return HEX_KEY


@pytest.fixture
def cipher() -> CredentialCipher:
    return CredentialCipher(HEX_KEY)


@pytest.fixture
def plain_cipher() -> CredentialCipher:
    """Cipher with no key configured (pass-through mode)."""
    return CredentialCipher(None)


@pytest.fixture
def make_token():
    def _make(company_id=None, sub=None, **claims):
        payload = {
            "sub": str(sub or uuid4()),
            "exp": datetime.now(timezone.utc) + timedelta(minutes=15),
            **claims,
        }
        if company_id is not None:
            payload["company_id"] = str(company_id)
        return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    return _make


# API Client (lifespan is not run, so no database is needed)
@pytest_asyncio.fixture(scope="function")
async def async_client():
    async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test"
    ) as client:
        yield client
    app.dependency_overrides.clear()
