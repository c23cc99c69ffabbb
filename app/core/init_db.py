from sqlalchemy.ext.asyncio import AsyncEngine
from app.core.database import engine as default_engine, Base
import app.models  # noqa: F401  registers the tables on Base.metadata


async def init_db(engine: AsyncEngine = default_engine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
