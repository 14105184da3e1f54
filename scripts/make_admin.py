"""Promote an existing account to admin: python scripts/make_admin.py <email_or_username>"""
import asyncio
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from betre.core.roles import Role
from betre.db.session import async_session_maker
from betre.models.user import User


async def promote_user(identifier: str) -> int:
    """identifier can be email or username."""
    async with async_session_maker() as session:
        if "@" in identifier:
            stmt = select(User).where(User.email == identifier.lower())
        else:
            stmt = select(User).where(User.username == identifier)
        user = await session.scalar(stmt)
        if user is None:
            print(f"Error: user '{identifier}' not found.")
            return 1

        previous = user.role
        user.role = Role.ADMIN.value
        await session.commit()
        print(f"{user.username} ({user.email}): {previous} -> {Role.ADMIN.value}")
        return 0


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python scripts/make_admin.py <email_or_username>")
        sys.exit(1)
    sys.exit(asyncio.run(promote_user(sys.argv[1])))
