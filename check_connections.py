import asyncio
import logging
import sys

import asyncpg
from saasguard.core.config import settings
from saasguard.core.encryption import cipher

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("connection_check")

MAX_RETRIES = 30
RETRY_INTERVAL = 2  # seconds


async def check_postgres():
    """Attempt to connect to PostgreSQL."""
    dsn = settings.DATABASE_URL
    for attempt in range(1, MAX_RETRIES + 1):
        try:
            logger.info(f"Checking PostgreSQL connection (Attempt {attempt}/{MAX_RETRIES})...")
            conn = await asyncpg.connect(dsn)
            await conn.close()
            logger.info("✅ PostgreSQL is ready!")
            return True
        except Exception as e:
            logger.warning(f"⚠️ PostgreSQL not ready yet: {e}")
            await asyncio.sleep(RETRY_INTERVAL)
    return False


async def main():
    if not cipher.is_enabled():
        # not fatal: the app falls back to storing credentials as plaintext
        logger.warning("⚠️ ENCRYPTION_KEY is not set - credentials will be stored unencrypted")

    if await check_postgres():
        logger.info("🚀 All critical services are UP. Starting application...")
        sys.exit(0)
    else:
        logger.error("❌ Critical services failed to start. Aborting.")
        sys.exit(1)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Connection check cancelled.")
        sys.exit(1)
