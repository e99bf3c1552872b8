# saasguard/modules/integrations/service.py

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from saasguard.core.encryption import transform_sensitive_fields
from saasguard.core.exceptions import NotFoundError
from saasguard.modules.audit.repository import AuditRepository
from saasguard.modules.audit.schemas import AuditLogCreate
from saasguard.modules.integrations.repository import IntegrationRepository
from saasguard.modules.integrations.schemas import (
    IntegrationInput,
    IntegrationResponse,
)

logger = logging.getLogger(__name__)

SECRET_MASK = "********"


def mask_settings(settings: Dict[str, Any]) -> Dict[str, Any]:
    """Replace every populated sensitive field with a fixed mask."""
    return transform_sensitive_fields(settings, lambda _path, _value: SECRET_MASK) or {}


class IntegrationService:
    def __init__(self, repo: IntegrationRepository, audit_repo: Optional[AuditRepository] = None):
        self.repo = repo
        self.audit_repo = audit_repo or AuditRepository(repo.conn)

    # ---------------------------------------------------------
    # UPSERT
    # ---------------------------------------------------------
    async def upsert_integrations(
        self,
        items: List[IntegrationInput],
        actor_user_id: Optional[UUID] = None,
    ) -> List[IntegrationResponse]:
        """
        Create or update one integration per provider.

        Existing settings are merged with the fields sent in the request.
        Returns plaintext settings so the caller can confirm what was saved.
        """
        results: List[IntegrationResponse] = []

        for item in items:
            provider = item.provider_name
            existing = await self.repo.get_by_provider(provider)

            if existing:
                merged = {**existing.settings, **item.to_settings(only_set=True)}
                saved = await self.repo.update(existing.id, merged, item.status)
                if not saved:
                    raise NotFoundError("Integration not found")
                action = "integration.update"
            else:
                saved = await self.repo.create(provider, item.to_settings(), item.status)
                action = "integration.create"

            await self.audit_repo.log_event(
                AuditLogCreate(
                    action_type=action,
                    resource_type="integration",
                    resource_id=str(saved.id),
                    details={"provider": provider, "fields": sorted(saved.settings.keys())},
                ),
                actor_user_id=actor_user_id,
            )
            results.append(saved)

        logger.info(f"Saved {len(results)} integration(s)")
        return results

    # ---------------------------------------------------------
    # LIST / GET
    # ---------------------------------------------------------
    async def list_integrations(self) -> List[IntegrationResponse]:
        integrations = await self.repo.list_integrations()
        return [i.model_copy(update={"settings": mask_settings(i.settings)}) for i in integrations]

    async def get_integration(self, integration_id: UUID) -> IntegrationResponse:
        integration = await self.repo.get_by_id(integration_id)
        if not integration:
            raise NotFoundError("Integration not found")
        return integration.model_copy(update={"settings": mask_settings(integration.settings)})

    # ---------------------------------------------------------
    # DELETE
    # ---------------------------------------------------------
    async def delete_integration(self, integration_id: UUID, actor_user_id: Optional[UUID] = None) -> None:
        existing = await self.repo.get_by_id(integration_id)
        if not existing:
            raise NotFoundError("Integration not found")

        await self.repo.delete(integration_id)

        await self.audit_repo.log_event(
            AuditLogCreate(
                action_type="integration.delete",
                resource_type="integration",
                resource_id=str(integration_id),
                details={"provider": existing.provider},
            ),
            actor_user_id=actor_user_id,
        )
