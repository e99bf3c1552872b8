# saasguard/modules/audit/repository.py

import json
from typing import Optional
from uuid import UUID

from asyncpg import Connection

from saasguard.modules.audit.schemas import AuditLogCreate


class AuditRepository:
    """
    Thin wrapper around audit_logs table.
    Uses current_setting('app.current_company_id') for company scoping.
    """

    def __init__(self, conn: Connection):
        self.conn = conn

    async def log_event(
            self,
            payload: AuditLogCreate,
            actor_user_id: Optional[UUID] = None,
    ) -> None:
        """
        Insert an audit log entry. Details must never carry secret values.
        """
        details_json = json.dumps(payload.details or {})

        await self.conn.execute(
            """
            INSERT INTO audit_logs (
                audit_id,
                company_id,
                actor_user_id,
                action_type,
                resource_type,
                resource_id,
                details
            )
            VALUES (
                uuid_generate_v4(),
                current_setting('app.current_company_id', true)::uuid,
                $1,
                $2,
                $3,
                $4,
                $5::jsonb
            )
            """,
            actor_user_id,
            payload.action_type,
            payload.resource_type,
            payload.resource_id,
            details_json,
        )
