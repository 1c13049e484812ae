#!/usr/bin/env python3
"""
Script to create the admin user for the SquadSync Booking Platform.
"""

import asyncio
import os
import sys
from getpass import getpass

# Add the project root to the Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from squadsync_booking_platform.config import get_settings
from squadsync_booking_platform.database import close_database, get_db_session, init_database
from squadsync_booking_platform.models.user import User, UserRole
from squadsync_booking_platform.services.user_service import UserService


async def create_admin_user(interactive: bool):
    """Create or reset the admin user, prompting for details when interactive."""
    settings = get_settings()
    print("SquadSync Booking Platform - Admin User Creation")
    print("=" * 50)

    email = password = full_name = None
    if interactive:
        email = input(f"Admin email [{settings.demo_admin_email}]: ").strip() or None
        full_name = input(f"Full name [{settings.demo_admin_name}]: ").strip() or None
        password = getpass("Password (blank for the configured demo password): ").strip() or None
        if password and password != getpass("Confirm password: ").strip():
            print("Passwords do not match!")
            return

    await init_database()
    try:
        async with get_db_session() as db:
            admin, created = await UserService(db).ensure_demo_admin(email, password, full_name)
            print(f"Admin user {'created' if created else 'updated'}:")
            print(f"   Email: {admin.email}")
            print(f"   Name: {admin.full_name}")
            print(f"   ID: {admin.id}")
    finally:
        await close_database()


async def list_admin_users():
    """List all admin users."""
    print("Current Admin Users")
    print("=" * 30)

    await init_database()
    try:
        async with get_db_session() as db:
            result = await db.execute(select(User).where(User.role == UserRole.ADMIN))
            admin_users = result.scalars().all()

            if not admin_users:
                print("No admin users found.")
            for user in admin_users:
                print(f"{user.email}")
                print(f"   Name: {user.full_name}")
                print(f"   Status: {user.status.value}")
                print(f"   ID: {user.id}")
                print()
    finally:
        await close_database()


async def main():
    """Main function."""
    command = sys.argv[1] if len(sys.argv) > 1 else "demo"
    if command == "list":
        await list_admin_users()
    else:
        await create_admin_user(interactive=command == "interactive")


if __name__ == "__main__":
    print("Usage:")
    print("  python create_admin_user.py              # Create the demo admin from settings")
    print("  python create_admin_user.py interactive  # Prompt for admin details")
    print("  python create_admin_user.py list         # List existing admin users")
    print()

    asyncio.run(main())
