"""
Database seeding script for the initial admin and commission policy.

Run this script after the database is set up but before first use.
Subjects are not seeded; they are created by salary submissions.
"""

import asyncio

from sqlalchemy import select

from salary_backend.app.core.security import get_password_hash
from salary_backend.app.db.session import AsyncSessionLocal, engine, Base
from salary_backend.app.domain.salary.commission_policy import CommissionPolicyResolver
from salary_backend.app.models.enums import UserRole
from salary_backend.app.models.user import User
import salary_backend.app.main  # noqa: F401  registers every model with Base

ADMIN_EMAIL = "admin@salaryledger.com"
ADMIN_PASSWORD = "admin123"


async def seed_users():
    """
    Seed the admin user and make sure a commission policy is active.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting seeding...")

        result = await db.execute(select(User).where(User.email == ADMIN_EMAIL))
        if result.scalar_one_or_none():
            print("ℹ️  ADMIN user already exists, skipping")
        else:
            db.add(User(
                email=ADMIN_EMAIL,
                name="Administrator",
                hashed_password=get_password_hash(ADMIN_PASSWORD),
                role=UserRole.ADMIN,
                is_active=True,
            ))
            print(f"✅ Created ADMIN user ({ADMIN_EMAIL} / {ADMIN_PASSWORD})")

        commission = await CommissionPolicyResolver(db).get_active()
        print(f"✅ Active commission: {commission} EUR")

        await db.commit()
        print("\n🎉 Seeding completed successfully!")


if __name__ == "__main__":
    asyncio.run(seed_users())
