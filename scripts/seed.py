"""Seed administrator accounts. Run with: python -m scripts.seed"""
import asyncio

from sqlalchemy import select

from app.auth.models import User
from app.db.session import async_session_factory

ADMINS = [
    # (login, email)
    ("admin", "admin@example.com"),
]


async def main() -> None:
    async with async_session_factory() as db:
        for login, email in ADMINS:
            result = await db.execute(select(User).where(User.login == login))
            if result.scalar_one_or_none() is None:
                db.add(User(login=login, email=email, is_admin=True))
                print(f"  Added: {login}")
            else:
                print(f"  Exists: {login}")

        await db.commit()
    print("Seeding complete.")


if __name__ == "__main__":
    asyncio.run(main())
