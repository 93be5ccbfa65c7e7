import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from ecotrack.routes import admin, auth, dashboard, events, leaderboard, post, profile
from ecotrack.config import settings  # <- import settings
from ecotrack.core.errors import install_error_handlers
from ecotrack.core.platform import close_platform
from ecotrack.services.events import run_retention_sweeper
import ecotrack.models  # <- ensure all model modules are imported and mappers registered

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    sweeper = None
    if settings.EVENT_SWEEP_ENABLED:
        sweeper = asyncio.create_task(run_retention_sweeper(), name="event-retention-sweeper")
    try:
        yield
    finally:
        if sweeper is not None:
            sweeper.cancel()
            await asyncio.gather(sweeper, return_exceptions=True)
        close_platform()


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
install_error_handlers(app)

# Use configured origins (reads from ecotrack.config.settings)
origins = settings.ALLOWED_ORIGINS

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(post.router)
app.include_router(profile.router)
app.include_router(events.router, prefix="/events")
app.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
app.include_router(leaderboard.router, prefix="/leaderboard", tags=["leaderboard"])
app.include_router(admin.router, prefix="/admin", tags=["admin"])


@app.get("/")
async def read_root():
    return {
        "message": "EcoTrack API is running",
        "platform_configured": settings.platform_configured,
    }
