"""Create an admin account: python scripts/create_admin.py <email> <username> <password>"""
import asyncio
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from betre.core.roles import Role
from betre.core.security import get_password_hash
from betre.db.session import async_session_maker
from betre.models.user import User


async def create_admin(email: str, username: str, password: str) -> int:
    async with async_session_maker() as session:
        existing = await session.scalar(
            select(User.id).where((User.email == email.lower()) | (User.username == username))
        )
        if existing is not None:
            print(f"Error: email '{email}' or username '{username}' is already taken.")
            return 1

        user = User(
            email=email.lower(),
            username=username,
            password_hash=get_password_hash(password),
            role=Role.ADMIN.value,
        )
        session.add(user)
        await session.commit()
        print(f"Admin created: {username} <{email}> id={user.id}")
        return 0


if __name__ == "__main__":
    if len(sys.argv) < 4:
        print("Usage: python scripts/create_admin.py <email> <username> <password>")
        sys.exit(1)
    sys.exit(asyncio.run(create_admin(sys.argv[1], sys.argv[2], sys.argv[3])))
