# saasguard/modules/integrations/repository.py

import json
from typing import List, Optional, Dict, Any
from uuid import UUID

from asyncpg import Connection

from saasguard.core.encryption import CredentialCipher, cipher as default_cipher, is_encrypted, transform_sensitive_fields
from saasguard.core.exceptions import EncryptionUnavailableError
from saasguard.modules.integrations.schemas import IntegrationResponse

_COLUMNS = "id, company_id, provider, settings, status, created_at, updated_at"

# Applied to every company-facing query on top of the RLS policy, so a
# superuser or BYPASSRLS pool still cannot cross companies.
_COMPANY_SCOPE = "company_id = current_setting('app.current_company_id', true)::uuid"


def _load_settings(value: Any) -> Dict[str, Any]:
    # asyncpg hands jsonb back as text unless a codec is registered
    if value is None:
        return {}
    if isinstance(value, str):
        return json.loads(value)
    return dict(value)


class IntegrationRepository:
    """
    Company-scoped integration repository.

    Table: company_integrations
      - id UUID
      - company_id UUID
      - provider TEXT
      - settings JSONB   (sensitive fields stored as encryption envelopes)
      - status TEXT
      - created_at / updated_at TIMESTAMPTZ

    Settings are encrypted on every write and decrypted on every read, so
    callers only ever see plaintext.
    """

    def __init__(self, conn: Connection, cipher: Optional[CredentialCipher] = None):
        self.conn = conn
        self.cipher = cipher or default_cipher

    # ------------------------------------------------------------------
    # CREATE / UPDATE
    # ------------------------------------------------------------------
    async def create(self, provider: str, settings: Dict[str, Any], status: str) -> IntegrationResponse:
        row = await self.conn.fetchrow(
            f"""
            INSERT INTO company_integrations (
                company_id,
                provider,
                settings,
                status
            )
            VALUES (
                current_setting('app.current_company_id', true)::uuid,
                $1,
                $2::jsonb,
                $3
            )
            RETURNING {_COLUMNS}
            """,
            provider,
            json.dumps(self._encrypt_settings(settings)),
            status,
        )
        return self._to_response(row, settings)

    async def update(self, integration_id: UUID, settings: Dict[str, Any], status: str) -> Optional[IntegrationResponse]:
        row = await self.conn.fetchrow(
            f"""
            UPDATE company_integrations
            SET settings = $2::jsonb,
                status = $3,
                updated_at = now()
            WHERE id = $1
              AND {_COMPANY_SCOPE}
            RETURNING {_COLUMNS}
            """,
            integration_id,
            json.dumps(self._encrypt_settings(settings)),
            status,
        )
        if not row:
            return None
        return self._to_response(row, settings)

    # ------------------------------------------------------------------
    # READ
    # ------------------------------------------------------------------
    async def list_integrations(self) -> List[IntegrationResponse]:
        rows = await self.conn.fetch(
            f"""
            SELECT {_COLUMNS}
            FROM company_integrations
            WHERE {_COMPANY_SCOPE}
            ORDER BY created_at DESC
            """
        )
        return [self._to_response(r) for r in rows]

    async def get_by_id(self, integration_id: UUID) -> Optional[IntegrationResponse]:
        row = await self.conn.fetchrow(
            f"SELECT {_COLUMNS} FROM company_integrations WHERE id = $1 AND {_COMPANY_SCOPE}",
            integration_id,
        )
        return self._to_response(row) if row else None

    async def get_by_provider(self, provider: str) -> Optional[IntegrationResponse]:
        row = await self.conn.fetchrow(
            f"SELECT {_COLUMNS} FROM company_integrations WHERE provider = $1 AND {_COMPANY_SCOPE}",
            provider,
        )
        return self._to_response(row) if row else None

    # ------------------------------------------------------------------
    # DELETE
    # ------------------------------------------------------------------
    async def delete(self, integration_id: UUID) -> None:
        await self.conn.execute(
            f"DELETE FROM company_integrations WHERE id = $1 AND {_COMPANY_SCOPE}",
            integration_id,
        )

    # ------------------------------------------------------------------
    # RAW ACCESS (credential migration only; bypasses encryption and
    # company scope, needs a superuser or BYPASSRLS connection)
    # ------------------------------------------------------------------
    async def list_raw_settings(self) -> List[Dict[str, Any]]:
        rows = await self.conn.fetch(
            "SELECT id, provider, settings FROM company_integrations ORDER BY created_at"
        )
        return [
            {"id": r["id"], "provider": r["provider"], "settings": _load_settings(r["settings"])}
            for r in rows
        ]

    async def update_raw_settings(self, integration_id: UUID, settings: Dict[str, Any]) -> None:
        await self.conn.execute(
            """
            UPDATE company_integrations
            SET settings = $2::jsonb,
                updated_at = now()
            WHERE id = $1
            """,
            integration_id,
            json.dumps(settings),
        )

    # ------------------------------------------------------------------
    # SETTINGS ENCRYPTION HELPERS
    # ------------------------------------------------------------------
    def _encrypt_settings(self, settings: Dict[str, Any]) -> Dict[str, Any]:
        """
        Encrypts sensitive fields. Refuses to store a field the cipher could
        not protect.

        Envelopes are written back untouched: a stored value this key cannot
        decrypt reaches here unchanged and must not be wrapped a second time.
        """
        def encrypt_field(path: str, value: Any) -> Any:
            if is_encrypted(value):
                return value
            encrypted = self.cipher.encrypt(value)
            if encrypted is None:
                raise EncryptionUnavailableError(path)
            return encrypted

        return transform_sensitive_fields(dict(settings or {}), encrypt_field)

    def _decrypt_settings(self, settings: Dict[str, Any]) -> Dict[str, Any]:
        return self.cipher.decrypt_object_fields(settings) or {}

    def _to_response(self, row, plaintext_settings: Optional[Dict[str, Any]] = None) -> IntegrationResponse:
        if plaintext_settings is None:
            plaintext_settings = self._decrypt_settings(_load_settings(row["settings"]))
        return IntegrationResponse(
            id=row["id"],
            company_id=row["company_id"],
            provider=row["provider"],
            settings=dict(plaintext_settings),
            status=row["status"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
