"""
Seed Admin User

Creates a database-backed admin account for Beacon Scholarship.
The environment-configured admin (ADMIN_EMAIL / ADMIN_PASSWORD) needs no
seeding; use this when an admin should own a real user row.

Usage:
    export SEED_ADMIN_PASSWORD='...'
    python scripts/seed_admin.py --email admin@example.com --name "Jane Doe"
"""

import argparse
import asyncio
import os
import sys

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from beacon_api.core.config import settings
from beacon_api.core.security import hash_password
from beacon_api.modules.users.models import UserRole
from beacon_api.modules.users.repository import UserRepository


async def seed_admin(email: str, name: str, password: str) -> None:
    """Create the admin user, or promote an existing account with that email."""
    email = email.strip().lower()

    engine = create_async_engine(settings.database_url, echo=False)
    async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as db:
        existing_user = await UserRepository.get_by_email(db, email)

        if existing_user:
            if existing_user.role != UserRole.ADMIN:
                await UserRepository.update(db, existing_user, role=UserRole.ADMIN)
                print(f"Promoted existing user to admin: {email}")
            else:
                print(f"Admin already exists: {email}")
            print(f"  ID: {existing_user.id}")
            await engine.dispose()
            return

        admin_user = await UserRepository.create(
            db,
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=UserRole.ADMIN,
            is_verified=True,
        )

        print("Admin created successfully!")
        print(f"  Email: {email}")
        print(f"  Name: {name}")
        print(f"  ID: {admin_user.id}")

    await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a Beacon Scholarship admin user")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", default="Administrator")
    args = parser.parse_args()

    password = os.environ.get("SEED_ADMIN_PASSWORD")
    if not password or len(password) < 8:
        sys.exit("SEED_ADMIN_PASSWORD must be set to at least 8 characters")

    asyncio.run(seed_admin(args.email, args.name, password))


if __name__ == "__main__":
    main()
