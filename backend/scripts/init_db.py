import asyncio
from backend.app.core.database import engine, Base
# IMPORT ALL MODELS (registers every table on Base.metadata)
import backend.app.models  # noqa: F401

async def init_models(drop: bool = False):
    async with engine.begin() as conn:
        # For Dev: drop to ensure schema update (WARNING: DELETES DATA)
        if drop:
            await conn.run_sync(Base.metadata.drop_all)

        # Safe create (only creates if missing)
        await conn.run_sync(Base.metadata.create_all)
        print("Database tables updated.")

if __name__ == "__main__":
    import sys
    asyncio.run(init_models(drop="--drop" in sys.argv))
