import asyncio
import logging

from policyflow.database import engine, Base

# Import all models to ensure they are registered in Base.metadata
from policyflow.departments.models import Department  # noqa: F401
from policyflow.auth.models import User  # noqa: F401
from policyflow.policies.models import Policy, PolicyVersion, Acknowledgement  # noqa: F401

logger = logging.getLogger(__name__)


async def init_models():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    logger.info("Database tables created.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(init_models())
