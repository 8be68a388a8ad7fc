"""
Database initialization script.

Creates the schema and seeds the initial administrator. Run this against a
fresh database when ``AUTO_CREATE_TABLES`` is disabled.
"""

import asyncio
import sys

from backend.app.core.config import get_settings
import backend.app.models  # noqa: F401
from backend.app.core.database import Base, create_tables, engine, get_db_context
from backend.app.services.user_service import seed_admin_user

settings = get_settings()


async def init_database():
    """Create all tables and the seed administrator."""
    print(f"Initializing database at {settings.database_url}...")
    await create_tables()
    async with get_db_context() as db:
        seeded = await seed_admin_user(db, settings)
    if seeded:
        print(f"Admin user created: {seeded.email}")
    await engine.dispose()
    print("Database initialized.")


async def drop_all_tables():
    """Drop all tables (use with caution!)."""
    async with engine.begin() as conn:
        print("Dropping all tables...")
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()
    print("All tables dropped.")


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "--drop":
        print("WARNING: This will drop all tables!")
        confirm = input("Type 'yes' to confirm: ")
        if confirm == "yes":
            asyncio.run(drop_all_tables())
        else:
            print("Aborted.")
    else:
        asyncio.run(init_database())
