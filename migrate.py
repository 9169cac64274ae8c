#!/usr/bin/env python3
"""
Database management script.
Creates, drops, resets and seeds the RentEasy schema.
"""

import asyncio
import sys
import argparse
import logging
from decimal import Decimal

from sqlalchemy import select

from renteasy.config import settings
from renteasy.database import (
    AsyncSessionLocal,
    create_tables,
    drop_tables,
    test_database_connection,
    close_db_connection,
)
from renteasy.models.user import User, UserRole
from renteasy.models.listing import Listing, ListingStatus
from renteasy.utils.months import current_month

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

SEED_ACCOUNTS = [
    ("admin@example.com", "System Administrator", UserRole.ADMIN),
    ("landlord@example.com", "Demo Landlord", UserRole.LANDLORD),
    ("tenant@example.com", "Demo Tenant", UserRole.TENANT),
]
SEED_PASSWORD = "changeme123"


class MigrationManager:
    """Manages schema creation and seed data."""

    async def check_connection(self) -> bool:
        connected = await test_database_connection()
        if not connected:
            logger.error(f"Cannot reach database for environment {settings.environment}")
        return connected

    async def create(self) -> None:
        logger.info("Creating database tables")
        await create_tables()

    async def drop(self) -> None:
        logger.warning("Dropping all tables - all data will be lost!")
        await drop_tables()

    async def seed_database(self) -> None:
        """Seed demo accounts and one listing. Existing accounts are left alone."""
        logger.info("Seeding database with initial data")

        async with AsyncSessionLocal() as session:
            try:
                users = {}
                for email, full_name, role in SEED_ACCOUNTS:
                    result = await session.execute(select(User).where(User.email == email))
                    user = result.scalar_one_or_none()
                    if user:
                        logger.info(f"{email} already exists, skipping")
                    else:
                        user = User(
                            email=email,
                            full_name=full_name,
                            role=role,
                            hashed_password=User.hash_password(SEED_PASSWORD),
                            is_active=True
                        )
                        session.add(user)
                        logger.info(f"Created {role.value} account {email}")
                    users[role] = user

                await session.flush()

                result = await session.execute(
                    select(Listing).where(Listing.owner_id == users[UserRole.LANDLORD].id)
                )
                if result.first() is None:
                    session.add(Listing(
                        title="Sunny studio near the park",
                        description="Top floor studio with a balcony and gas line.",
                        rent=Decimal("15000"),
                        service_charge=Decimal("1000"),
                        rent_start_month=current_month(),
                        address="Road 12, Dhanmondi, Dhaka",
                        room_type="Studio",
                        beds=1,
                        baths=1,
                        amenities=["Balcony"],
                        status=ListingStatus.ACTIVE,
                        owner_id=users[UserRole.LANDLORD].id
                    ))
                    logger.info("Created demo listing")

                await session.commit()
                logger.info("Database seeded successfully")
                logger.warning(f"Seed accounts use the password '{SEED_PASSWORD}'. Change it outside development!")

            except Exception as e:
                await session.rollback()
                logger.error(f"Failed to seed database: {e}")
                raise

    async def reset_database(self) -> None:
        """Drop, recreate and seed all tables."""
        if not settings.is_development and not settings.is_testing:
            raise RuntimeError("Database reset is only allowed in development or test mode")

        await self.drop()
        await self.create()
        await self.seed_database()
        logger.info("Database reset completed")


async def run(args: argparse.Namespace) -> None:
    manager = MigrationManager()
    try:
        if not await manager.check_connection():
            raise RuntimeError("Database connection failed")

        if args.command == "create":
            await manager.create()
        elif args.command == "drop":
            await manager.drop()
        elif args.command == "seed":
            await manager.seed_database()
        elif args.command == "reset":
            await manager.reset_database()
    finally:
        await close_db_connection()


def main():
    """Main CLI interface for database management."""
    parser = argparse.ArgumentParser(description="RentEasy database management")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("create", help="Create all tables")
    subparsers.add_parser("drop", help="Drop all tables (development only)")
    subparsers.add_parser("seed", help="Seed demo accounts and a listing")
    reset_parser = subparsers.add_parser("reset", help="Drop, create and seed (development only)")
    reset_parser.add_argument("--confirm", action="store_true", help="Confirm database reset")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    if args.command == "reset" and not args.confirm:
        print("Database reset requires --confirm flag")
        return

    try:
        asyncio.run(run(args))
    except Exception as e:
        logger.error(f"Command failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
