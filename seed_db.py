import asyncio
import asyncpg
from saasguard.core.config import settings


async def apply_schema():
    print(f"🌱 Applying schema at {settings.DATABASE_HOST}...")

    # Read the SQL file
    try:
        with open("schema.sql", "r") as f:
            sql = f.read()
    except FileNotFoundError:
        print("❌ Error: 'schema.sql' file not found.")
        return

    conn = None
    try:
        conn = await asyncpg.connect(settings.DATABASE_URL)

        await conn.execute(sql)

        print("✅ Integration and audit tables are ready.")

    except Exception as e:
        print(f"❌ Database Error: {e}")
    finally:
        if conn is not None:
            await conn.close()


if __name__ == "__main__":
    asyncio.run(apply_schema())
