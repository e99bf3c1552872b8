# saasguard/core/database.py

import asyncpg
from typing import AsyncGenerator, Optional

from saasguard.core.config import settings


class Database:
    """
    Central asyncpg connection pool wrapper.

    - connect() / disconnect() manage the pool lifecycle.
    - get_connection(company_id) yields a connection scoped to one company.
    - ping() is used by /health.
    """

    def __init__(self) -> None:
        self.pool: Optional[asyncpg.Pool] = None

    async def connect(self) -> None:
        if self.pool is not None:
            return

        self.pool = await asyncpg.create_pool(
            host=settings.DATABASE_HOST,
            port=settings.DATABASE_PORT,
            user=settings.DATABASE_USER,
            password=settings.DATABASE_PASSWORD,
            database=settings.DATABASE_NAME,
            min_size=settings.DATABASE_POOL_MIN_SIZE,
            max_size=settings.DATABASE_POOL_SIZE,
        )

    async def disconnect(self) -> None:
        if self.pool is not None:
            await self.pool.close()
            self.pool = None

    async def ping(self) -> bool:
        """
        Returns True if the database responds to a simple query.
        """
        try:
            if self.pool is None:
                await self.connect()
            async with self.pool.acquire() as conn:
                await conn.execute("SELECT 1")
            return True
        except Exception:
            return False

    async def get_connection(self, company_id: str) -> AsyncGenerator[asyncpg.Connection, None]:
        """
        Acquire a connection and set the company context for the duration
        of the transaction:

            SELECT set_config('app.current_company_id', <company_id>, true);
        """
        if self.pool is None:
            await self.connect()

        async with self.pool.acquire() as conn:
            async with conn.transaction():
                # SET LOCAL cannot take a bind parameter; use set_config()
                await conn.execute(
                    "SELECT set_config('app.current_company_id', $1, true)",
                    company_id,
                )
                yield conn


db = Database()
