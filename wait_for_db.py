"""
Database bootstrap script.

Waits for the database to accept connections, then creates the gateway tables
(moderation_keywords, content_flags, users) if they do not exist yet.
"""

import asyncio
import sys
import time

from sqlalchemy import text

from src.core.database import Base, get_engine
from src.modules.moderation import models as _moderation_models  # noqa: F401
from src.modules.users import models as _user_models  # noqa: F401


async def wait_for_database(max_retries: int = 30, retry_interval: int = 2) -> bool:
    """
    Wait for database connection to be ready.

    Args:
        max_retries: Maximum number of connection attempts
        retry_interval: Seconds to wait between attempts

    Returns:
        True if connection successful, False otherwise
    """
    print("Waiting for database connection...")

    engine = get_engine()

    for attempt in range(max_retries):
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))

            print("Database connection established successfully")
            return True

        except Exception as e:
            print(f"Database is not ready yet... retrying in {retry_interval} seconds ({attempt}/{max_retries})")
            if attempt < max_retries - 1:
                await asyncio.sleep(retry_interval)
            else:
                print("Error: Could not connect to the database.")
                print(f"Last error: {e}")

    return False


async def create_tables() -> None:
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print(f"Ensured tables: {', '.join(sorted(Base.metadata.tables))}")


async def main() -> bool:
    try:
        if not await wait_for_database():
            return False
        await create_tables()
        return True
    finally:
        await get_engine().dispose()


if __name__ == "__main__":
    start_time = time.time()
    result = asyncio.run(main())
    elapsed = time.time() - start_time

    if result:
        print(f"Database ready after {elapsed:.2f} seconds")
        sys.exit(0)
    else:
        print(f"Failed to prepare database after {elapsed:.2f} seconds")
        sys.exit(1)
