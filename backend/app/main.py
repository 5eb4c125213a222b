import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.app.core.config import settings
from backend.app.core.database import engine, Base
import backend.app.models  # noqa: F401  (registers tables)
from backend.app.api.admin import router as admin_router
from backend.app.api.tournament import router as tournament_router

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

# --- LIFESPAN MANAGER (schema on startup) ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Tournament engine ready")
    yield
    await engine.dispose()
# -------------------------------------------------

app = FastAPI(title="Tournament Progression Engine", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"], # Allow Vite (5173) and React default (3000)
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(admin_router, prefix="/admin", tags=["Admin"])
app.include_router(tournament_router, prefix="/tournaments", tags=["Tournaments"])

@app.get("/health")
async def health():
    return {"status": "ok"}
