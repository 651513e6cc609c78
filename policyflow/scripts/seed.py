"""Bootstrap a fresh database: one super admin, one staff member, one published policy.

Safe to run repeatedly; rows that already exist are left alone.
"""
import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from policyflow.config import settings
from policyflow.database import AsyncSessionLocal, engine, serialized_write
from policyflow.auth.models import Role, User
from policyflow.policies.models import Policy, PolicyStatus, PolicyVersion, VisibilityType
from policyflow.scripts.init_db import init_models

logger = logging.getLogger(__name__)

STAFF_EMAIL = "staff@example.com"
STAFF_NAME = "Sample Staff"
SAMPLE_POLICY_TITLE = "Employee Code of Conduct"
SAMPLE_POLICY_CONTENT = """# Employee Code of Conduct

1. Treat colleagues, customers and partners with respect.
2. Protect confidential information and company property.
3. Report conflicts of interest to your manager.
4. Raise concerns about misconduct without fear of retaliation.
"""


async def _get_user(session: AsyncSession, email: str):
    result = await session.execute(select(User).where(User.email == email))
    return result.scalars().first()


async def seed_data():
    async with AsyncSessionLocal() as session:
        async with serialized_write(session):
            admin = await _get_user(session, settings.ADMIN_EMAIL)
            if not admin:
                admin = User(email=settings.ADMIN_EMAIL, name=settings.ADMIN_NAME, role=Role.SUPER_ADMIN)
                session.add(admin)
                await session.flush()
                logger.info("Created super admin %s", admin.email)
            else:
                logger.info("Super admin exists: %s", admin.email)

            if not await _get_user(session, STAFF_EMAIL):
                session.add(User(email=STAFF_EMAIL, name=STAFF_NAME, role=Role.STAFF, created_by=admin.id))
                logger.info("Created staff user %s", STAFF_EMAIL)

            result = await session.execute(select(Policy).where(Policy.title == SAMPLE_POLICY_TITLE))
            if not result.scalars().first():
                policy = Policy(
                    title=SAMPLE_POLICY_TITLE,
                    status=PolicyStatus.PUBLISHED,
                    visibility_type=VisibilityType.ORGANIZATION,
                )
                session.add(policy)
                await session.flush()
                version = PolicyVersion(
                    policy_id=policy.id,
                    content=SAMPLE_POLICY_CONTENT,
                    version_string="v1.0.0",
                    changelog="Initial version",
                )
                session.add(version)
                await session.flush()
                policy.current_version_id = version.id
                logger.info("Created sample policy %s (%s)", policy.title, version.version_string)

    logger.info("Seeding complete.")


async def main():
    await init_models()
    await seed_data()
    await engine.dispose()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
