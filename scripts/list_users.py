"""Print every account with its role and moderation counters."""
import asyncio
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from betre.db.session import async_session_maker
from betre.models.user import User


async def list_users() -> None:
    async with async_session_maker() as session:
        result = await session.execute(
            select(User.username, User.email, User.role, User.warning_count, User.reported_count).order_by(
                User.username
            )
        )
        users = result.all()
        if not users:
            print("No users found in database.")
            return
        print(f"{'username':<24} {'role':<10} {'warnings':>8} {'reports':>8}  email")
        for username, email, role, warnings, reports in users:
            print(f"{username:<24} {role:<10} {warnings:>8} {reports:>8}  {email}")


if __name__ == "__main__":
    asyncio.run(list_users())
