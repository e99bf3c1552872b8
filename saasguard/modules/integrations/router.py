# saasguard/modules/integrations/router.py

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status

from saasguard.dependencies.auth_utils import get_current_user_id
from saasguard.dependencies.database import get_company_db_connection
from saasguard.modules.integrations.repository import IntegrationRepository
from saasguard.modules.integrations.schemas import (
    IntegrationUpsertRequest,
    IntegrationListResponse,
    IntegrationResponse,
)
from saasguard.modules.integrations.service import IntegrationService
from saasguard.modules.audit.repository import AuditRepository

router = APIRouter(
    prefix="/integrations",
    tags=["Integrations"],
)


def get_integration_service(conn=Depends(get_company_db_connection)) -> IntegrationService:
    repo = IntegrationRepository(conn)
    audit = AuditRepository(conn)
    return IntegrationService(repo, audit)


def get_actor_id(user_id: str = Depends(get_current_user_id)) -> Optional[UUID]:
    try:
        return UUID(user_id)
    except ValueError:
        return None


@router.post(
    "/",
    response_model=IntegrationListResponse,
)
async def upsert_integrations(
    body: IntegrationUpsertRequest,
    actor_id: Optional[UUID] = Depends(get_actor_id),
    service: IntegrationService = Depends(get_integration_service),
):
    saved = await service.upsert_integrations(body.integrations, actor_user_id=actor_id)
    return IntegrationListResponse(integrations=saved)


@router.get(
    "/",
    response_model=IntegrationListResponse,
)
async def list_integrations(
    service: IntegrationService = Depends(get_integration_service),
):
    return IntegrationListResponse(integrations=await service.list_integrations())


@router.get(
    "/{integration_id}",
    response_model=IntegrationResponse,
)
async def get_integration(
    integration_id: UUID,
    service: IntegrationService = Depends(get_integration_service),
):
    return await service.get_integration(integration_id)


@router.delete(
    "/{integration_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_integration(
    integration_id: UUID,
    actor_id: Optional[UUID] = Depends(get_actor_id),
    service: IntegrationService = Depends(get_integration_service),
):
    await service.delete_integration(integration_id, actor_user_id=actor_id)
    return None
