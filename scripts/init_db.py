#!/usr/bin/env python3
"""Create the agenda tables (idempotent)."""

import asyncio
import sys
from pathlib import Path

from sqlalchemy import text

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from agenda.database import engine  # noqa: E402
from agenda.models import metadata  # noqa: E402


async def init_db() -> None:
    """Create every table that does not exist yet."""
    async with engine.begin() as conn:
        # gen_random_uuid() for the UUID primary keys
        await conn.execute(text('CREATE EXTENSION IF NOT EXISTS "pgcrypto"'))
        await conn.run_sync(metadata.create_all)

    await engine.dispose()
    print("✓ Database initialized successfully!")


if __name__ == "__main__":
    asyncio.run(init_db())
