# tests/unit/test_integration_service.py

from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from saasguard.core.exceptions import NotFoundError
from saasguard.modules.integrations.schemas import IntegrationInput, IntegrationResponse
from saasguard.modules.integrations.service import IntegrationService, SECRET_MASK, mask_settings


def _integration(provider="HubSpot", settings=None):
    return IntegrationResponse(
        id=uuid4(),
        company_id=uuid4(),
        provider=provider,
        settings=settings or {},
        status="connected",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def _service(repo):
    audit = Mock()
    audit.log_event = AsyncMock()
    return IntegrationService(repo, audit), audit


@pytest.mark.asyncio
async def test_upsert_creates_new_integration_with_full_settings():
    repo = Mock()
    repo.get_by_provider = AsyncMock(return_value=None)
    repo.create = AsyncMock(side_effect=lambda provider, settings, status: _integration(provider, settings))
    svc, audit = _service(repo)

    item = IntegrationInput(tool_name="Fortnox", client_id="fx-id", client_secret="fx-secret")
    out = await svc.upsert_integrations([item])

    provider, settings, status = repo.create.call_args.args
    assert provider == "Fortnox"
    assert status == "connected"
    assert settings["client_secret"] == "fx-secret"
    assert settings["connection_type"] == "api_key"
    assert settings["environment"] == "production"
    assert settings["api_key"] is None

    # caller gets plaintext back to confirm what was stored
    assert out[0].settings["client_secret"] == "fx-secret"

    event = audit.log_event.call_args.args[0]
    assert event.action_type == "integration.create"
    assert "fx-secret" not in str(event.details)


@pytest.mark.asyncio
async def test_upsert_merges_only_sent_fields_into_existing():
    existing = _integration(
        "HubSpot",
        {"api_key": "old-key", "client_secret": "keep-me", "environment": "sandbox"},
    )
    repo = Mock()
    repo.get_by_provider = AsyncMock(return_value=existing)
    repo.update = AsyncMock(side_effect=lambda _id, settings, status: _integration("HubSpot", settings))
    repo.create = AsyncMock()
    svc, audit = _service(repo)

    item = IntegrationInput(provider="HubSpot", api_key="new-key", settings={"portal_id": 42})
    await svc.upsert_integrations([item])

    integration_id, merged, _status = repo.update.call_args.args
    assert integration_id == existing.id
    assert merged == {
        "api_key": "new-key",
        "client_secret": "keep-me",
        "environment": "sandbox",
        "portal_id": 42,
    }
    repo.create.assert_not_called()
    assert audit.log_event.call_args.args[0].action_type == "integration.update"


@pytest.mark.asyncio
async def test_upsert_update_race_raises_not_found():
    repo = Mock()
    repo.get_by_provider = AsyncMock(return_value=_integration())
    repo.update = AsyncMock(return_value=None)
    svc, _ = _service(repo)

    with pytest.raises(NotFoundError):
        await svc.upsert_integrations([IntegrationInput(provider="HubSpot")])


def test_input_requires_provider():
    with pytest.raises(ValueError):
        IntegrationInput(api_key="x")


@pytest.mark.asyncio
async def test_list_masks_secrets():
    stored = _integration(
        settings={
            "client_id": "public",
            "client_secret": "SUPER_SECRET_VALUE_123",
            "api_key": None,
            "oauth_data": {"tokens": {"access_token": "at", "refresh_token": "rt"}},
        }
    )
    repo = Mock()
    repo.list_integrations = AsyncMock(return_value=[stored])
    svc, _ = _service(repo)

    listed = await svc.list_integrations()
    settings = listed[0].settings

    assert settings["client_id"] == "public"
    assert settings["client_secret"] == SECRET_MASK
    assert settings["api_key"] is None
    assert settings["oauth_data"]["tokens"] == {"access_token": SECRET_MASK, "refresh_token": SECRET_MASK}
    # repository object is left untouched
    assert stored.settings["client_secret"] == "SUPER_SECRET_VALUE_123"


@pytest.mark.asyncio
async def test_get_integration_masks_and_404s():
    found = _integration(settings={"api_key": "ak"})
    repo = Mock()
    repo.get_by_id = AsyncMock(side_effect=[found, None])
    svc, _ = _service(repo)

    assert (await svc.get_integration(found.id)).settings == {"api_key": SECRET_MASK}
    with pytest.raises(NotFoundError):
        await svc.get_integration(uuid4())


@pytest.mark.asyncio
async def test_delete_integration():
    existing = _integration("Stripe")
    repo = Mock()
    repo.get_by_id = AsyncMock(return_value=existing)
    repo.delete = AsyncMock()
    svc, audit = _service(repo)

    await svc.delete_integration(existing.id)

    repo.delete.assert_awaited_once_with(existing.id)
    event = audit.log_event.call_args.args[0]
    assert event.action_type == "integration.delete"
    assert event.details == {"provider": "Stripe"}


@pytest.mark.asyncio
async def test_delete_missing_integration_raises():
    repo = Mock()
    repo.get_by_id = AsyncMock(return_value=None)
    repo.delete = AsyncMock()
    svc, _ = _service(repo)

    with pytest.raises(NotFoundError):
        await svc.delete_integration(uuid4())
    repo.delete.assert_not_called()


def test_mask_settings_handles_empty():
    assert mask_settings({}) == {}
