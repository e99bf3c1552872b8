"""
Encrypt integration credentials that were stored before encryption was
enabled.

Usage:
    ENCRYPTION_KEY=<key> python encrypt_existing_credentials.py

Run once after setting ENCRYPTION_KEY. Running it again is safe; values
that are already encrypted are skipped.

The table forces row level security, so DATABASE_USER must be a superuser
or a role with BYPASSRLS for this script to see every company's rows.
"""

import asyncio
import logging
import sys

import asyncpg

from saasguard.core.config import settings
from saasguard.core.encryption import cipher
from saasguard.modules.integrations.migration import CredentialMigration
from saasguard.modules.integrations.repository import IntegrationRepository

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("credential_migration")


async def main() -> int:
    if not cipher.is_enabled():
        logger.error("❌ ENCRYPTION_KEY environment variable is not set")
        logger.error("Please set ENCRYPTION_KEY before running this migration")
        return 1

    logger.info(f"🔐 Encrypting stored credentials at {settings.DATABASE_HOST}...")

    # Connect directly (no company scope) so every row is visible
    conn = await asyncpg.connect(settings.DATABASE_URL)
    try:
        can_bypass = await conn.fetchval(
            "SELECT rolsuper OR rolbypassrls FROM pg_roles WHERE rolname = current_user"
        )
        if not can_bypass:
            logger.error(f"❌ Role {settings.DATABASE_USER} is subject to row level security")
            logger.error("Run the migration as a superuser or a role with BYPASSRLS")
            return 1

        report = await CredentialMigration(IntegrationRepository(conn, cipher), cipher).run()
    finally:
        await conn.close()

    print("=== Migration Complete ===")
    print(f"  Updated: {report.updated}")
    print(f"  Skipped: {report.skipped}")
    print(f"  Errors: {report.errors}")

    if not report.ok:
        logger.error("❌ Some integrations failed to update. Check the errors above.")
        return 1

    logger.info("✅ All credentials have been encrypted successfully!")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Migration cancelled.")
        sys.exit(1)
