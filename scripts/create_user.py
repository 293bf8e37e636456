#!/usr/bin/env python3
"""
Create (or reactivate) a dashboard user and print an API access token.

Usage:
    python scripts/create_user.py admin@clinic.example "Front Desk"
    python scripts/create_user.py admin@clinic.example --expires-minutes 1440
    python scripts/create_user.py desk@clinic.example "Front Desk" --role user
"""

import argparse
import asyncio
import sys
from datetime import timedelta
from pathlib import Path

import dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

dotenv.load_dotenv()

from sqlalchemy.dialects.postgresql import insert as pg_insert  # noqa: E402

from agenda.core.security import create_access_token  # noqa: E402
from agenda.database import AsyncSessionLocal, engine  # noqa: E402
from agenda.models import users  # noqa: E402


async def create_user(email: str, full_name: str | None, role: str, expires_minutes: int) -> str:
    """Upsert the user by email and return a signed access token."""
    stmt = pg_insert(users).values(email=email, full_name=full_name, role=role, is_active=True)
    stmt = stmt.on_conflict_do_update(
        index_elements=[users.c.email],
        set_={"is_active": True, "full_name": stmt.excluded.full_name, "role": stmt.excluded.role},
    ).returning(users.c.id)

    async with AsyncSessionLocal() as session:
        user_id = (await session.execute(stmt)).scalar_one()
        await session.commit()
    await engine.dispose()

    return create_access_token(
        {"sub": str(user_id), "email": email},
        expires_delta=timedelta(minutes=expires_minutes),
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a dashboard user")
    parser.add_argument("email")
    parser.add_argument("full_name", nargs="?")
    parser.add_argument("--role", choices=["admin", "user"], default="admin")
    parser.add_argument("--expires-minutes", type=int, default=60)
    args = parser.parse_args()

    token = asyncio.run(create_user(args.email, args.full_name, args.role, args.expires_minutes))
    print(token)


if __name__ == "__main__":
    main()
