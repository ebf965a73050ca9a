# market/scripts/create_admin.py
import argparse
import asyncio
import getpass

from sqlalchemy import or_, select

from market.core.db import AsyncSessionLocal, init_models
from market.core.security import hash_password
from market.models.user_models import User


async def create_admin(username: str, email: str, password: str, name: str = "Administrator") -> User:
    await init_models()
    async with AsyncSessionLocal() as session:
        result = await session.execute(
            select(User).where(or_(User.username == username, User.email == email))
        )
        user = result.scalars().first()
        if user:
            user.role = "admin"
            user.is_active = True
        else:
            user = User(
                name=name,
                username=username,
                email=email.lower(),
                password_hash=hash_password(password),
                role="admin",
                is_active=True,
            )
            session.add(user)
        await session.commit()
        return user


def main():
    parser = argparse.ArgumentParser(description="Create or promote an admin account")
    parser.add_argument("--username", default="admin")
    parser.add_argument("--email", default="admin@example.com")
    parser.add_argument("--name", default="Administrator")
    args = parser.parse_args()

    password = getpass.getpass("Admin password: ")
    user = asyncio.run(create_admin(args.username, args.email, password, args.name))
    print(f"Admin user '{user.username}' ready (ID: {user.id})")


if __name__ == "__main__":
    main()
