# saasguard/modules/integrations/migration.py

"""
One-shot encryption of integration credentials stored before encryption
was enabled.

Safe to run repeatedly: values that already look like envelopes are left
alone, and rows with nothing to encrypt are not rewritten.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from saasguard.core.encryption import CredentialCipher, cipher as default_cipher, is_encrypted, transform_sensitive_fields
from saasguard.core.exceptions import EncryptionUnavailableError
from saasguard.modules.integrations.repository import IntegrationRepository

logger = logging.getLogger(__name__)


@dataclass
class MigrationReport:
    updated: int = 0
    skipped: int = 0
    errors: int = 0

    @property
    def ok(self) -> bool:
        return self.errors == 0


class CredentialMigration:
    def __init__(self, repo: IntegrationRepository, cipher: Optional[CredentialCipher] = None):
        self.repo = repo
        self.cipher = cipher or default_cipher

    def _encrypt_if_needed(self, path: str, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        if is_encrypted(value):
            logger.info(f"  - {path} already encrypted")
            return value

        logger.info(f"  - Encrypting {path}")
        encrypted = self.cipher.encrypt(value)
        if encrypted is None:
            raise EncryptionUnavailableError(path)
        return encrypted

    def protect_settings(self, settings: dict) -> dict:
        """Return settings with every plaintext sensitive field encrypted."""
        return transform_sensitive_fields(settings, self._encrypt_if_needed) or {}

    async def run(self) -> MigrationReport:
        if not self.cipher.is_enabled():
            raise RuntimeError("ENCRYPTION_KEY is not set; refusing to run credential migration")

        report = MigrationReport()
        rows = await self.repo.list_raw_settings()
        logger.info(f"Found {len(rows)} integration(s) to process")

        for row in rows:
            logger.info(f"Processing: {row['provider']} (ID: {row['id']})")
            settings = row["settings"] or {}

            try:
                protected = self.protect_settings(settings)
                if protected == settings:
                    logger.info("  SKIPPED: No unencrypted credentials found")
                    report.skipped += 1
                    continue

                await self.repo.update_raw_settings(row["id"], protected)
            except Exception as e:
                logger.error(f"  ERROR updating {row['id']}: {e}")
                report.errors += 1
                continue

            logger.info("  SUCCESS: Credentials encrypted")
            report.updated += 1

        logger.info(
            f"Migration complete - updated: {report.updated}, "
            f"skipped: {report.skipped}, errors: {report.errors}"
        )
        return report
