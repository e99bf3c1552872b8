# tests/unit/test_integration_repository.py

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from saasguard.core.encryption import CredentialCipher, is_encrypted
from saasguard.core.exceptions import EncryptionUnavailableError
from saasguard.modules.integrations.repository import IntegrationRepository
from saasguard.modules.integrations.schemas import IntegrationInput
from saasguard.modules.integrations.service import IntegrationService


def _row(settings, provider="HubSpot"):
    return {
        "id": uuid4(),
        "company_id": uuid4(),
        "provider": provider,
        "settings": settings,
        "status": "connected",
        "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
        "updated_at": None,
    }


def _stored_settings(conn):
    # settings are always the second positional bind parameter ($2)
    return json.loads(conn.fetchrow.call_args.args[2])


@pytest.mark.asyncio
async def test_create_stores_ciphertext_and_returns_plaintext(cipher):
    conn = Mock()
    settings = {
        "connection_type": "oauth",
        "client_id": "abc",
        "client_secret": "SUPER_SECRET",
        "oauth_data": {"tokens": {"access_token": "at", "refresh_token": "rt"}},
    }
    conn.fetchrow = AsyncMock(side_effect=lambda *args: _row(args[2]))

    repo = IntegrationRepository(conn, cipher)
    created = await repo.create("HubSpot", settings, "connected")

    stored = _stored_settings(conn)
    assert is_encrypted(stored["client_secret"])
    assert is_encrypted(stored["oauth_data"]["tokens"]["access_token"])
    assert stored["client_id"] == "abc"

    assert created.settings == settings


@pytest.mark.asyncio
async def test_reads_decrypt_jsonb_text(cipher):
    conn = Mock()
    stored = cipher.encrypt_object_fields({"api_key": "ak_123", "environment": "production"})
    conn.fetchrow = AsyncMock(return_value=_row(json.dumps(stored)))

    repo = IntegrationRepository(conn, cipher)
    found = await repo.get_by_provider("HubSpot")

    assert found.settings == {"api_key": "ak_123", "environment": "production"}


@pytest.mark.asyncio
async def test_reads_tolerate_legacy_plaintext(cipher):
    conn = Mock()
    conn.fetch = AsyncMock(return_value=[_row({"api_key": "plain-legacy"})])

    repo = IntegrationRepository(conn, cipher)
    listed = await repo.list_integrations()

    assert listed[0].settings == {"api_key": "plain-legacy"}


@pytest.mark.asyncio
async def test_get_by_id_missing_returns_none(cipher):
    conn = Mock()
    conn.fetchrow = AsyncMock(return_value=None)

    repo = IntegrationRepository(conn, cipher)
    assert await repo.get_by_id(uuid4()) is None


@pytest.mark.asyncio
async def test_unprotectable_value_is_never_written(cipher):
    conn = Mock()
    conn.fetchrow = AsyncMock()

    broken = Mock(wraps=cipher)
    broken.encrypt = Mock(return_value=None)

    repo = IntegrationRepository(conn, broken)
    with pytest.raises(EncryptionUnavailableError) as exc:
        await repo.create("Fortnox", {"client_secret": "cs"}, "connected")

    assert exc.value.field == "client_secret"
    conn.fetchrow.assert_not_called()


@pytest.mark.asyncio
async def test_without_key_settings_are_stored_as_is(plain_cipher):
    conn = Mock()
    conn.fetchrow = AsyncMock(side_effect=lambda *args: _row(args[2]))

    repo = IntegrationRepository(conn, plain_cipher)
    await repo.create("Stripe", {"api_key": "sk_test"}, "connected")

    assert _stored_settings(conn) == {"api_key": "sk_test"}


@pytest.mark.asyncio
async def test_update_missing_row_returns_none(cipher):
    conn = Mock()
    conn.fetchrow = AsyncMock(return_value=None)

    repo = IntegrationRepository(conn, cipher)
    assert await repo.update(uuid4(), {"api_key": "x"}, "connected") is None


@pytest.mark.asyncio
async def test_raw_settings_skip_encryption(cipher):
    conn = Mock()
    row_id = uuid4()
    conn.fetch = AsyncMock(return_value=[{"id": row_id, "provider": "HubSpot", "settings": '{"api_key": "plain"}'}])
    conn.execute = AsyncMock()

    repo = IntegrationRepository(conn, cipher)
    rows = await repo.list_raw_settings()
    assert rows == [{"id": row_id, "provider": "HubSpot", "settings": {"api_key": "plain"}}]

    await repo.update_raw_settings(row_id, {"api_key": "already-an-envelope"})
    assert json.loads(conn.execute.call_args.args[2]) == {"api_key": "already-an-envelope"}


@pytest.mark.asyncio
async def test_status_only_update_keeps_undecryptable_envelope(cipher):
    # stored under a key this deployment no longer holds
    old_cipher = CredentialCipher("f" * 64)
    envelope = old_cipher.encrypt("sk_live_old")
    existing = _row(json.dumps({"api_key": envelope, "client_id": "public"}), provider="stripe")

    conn = Mock()
    conn.fetchrow = AsyncMock(side_effect=[existing, existing])
    audit = Mock()
    audit.log_event = AsyncMock()
    svc = IntegrationService(IntegrationRepository(conn, cipher), audit)

    await svc.upsert_integrations([IntegrationInput(provider="stripe", status="paused")])

    _sql, _id, settings_json, status = conn.fetchrow.call_args.args
    assert status == "paused"
    assert json.loads(settings_json)["api_key"] == envelope
    assert old_cipher.decrypt(json.loads(settings_json)["api_key"]) == "sk_live_old"


@pytest.mark.asyncio
async def test_company_queries_are_scoped_to_current_company(cipher):
    conn = Mock()
    conn.fetchrow = AsyncMock(side_effect=lambda *args: _row(json.dumps({})))
    conn.fetch = AsyncMock(return_value=[])
    conn.execute = AsyncMock()
    repo = IntegrationRepository(conn, cipher)
    integration_id = uuid4()

    await repo.list_integrations()
    await repo.get_by_id(integration_id)
    await repo.get_by_provider("HubSpot")
    await repo.update(integration_id, {}, "connected")
    await repo.delete(integration_id)

    queries = [c.args[0] for c in conn.fetch.call_args_list + conn.fetchrow.call_args_list + conn.execute.call_args_list]
    assert len(queries) == 5
    for sql in queries:
        assert "company_id = current_setting('app.current_company_id', true)::uuid" in sql
