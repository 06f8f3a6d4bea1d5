import asyncio

from workflow_engine.core.database import Base, engine

# Import all models to register them with Base
import workflow_engine.models  # noqa: F401


async def init_db(bind=None):
    """Create the workflow tables if they do not exist yet."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


if __name__ == "__main__":
    asyncio.run(init_db())
