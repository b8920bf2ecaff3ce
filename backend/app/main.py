import asyncio
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session

from app.config import get_settings
from app.database import engine, init_db
from app.routes import (
    auth,
    bands,
    chords,
    church_member_roles,
    church_roles,
    churches,
    events,
    lyrics,
    memberships,
    songs,
    subscriptions,
    temporal_token_pool,
    users,
)
from app.services import temporal_token_pool as token_pool

logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/api", tags=["auth"])
app.include_router(users.router, prefix="/api", tags=["users"])
app.include_router(temporal_token_pool.router, prefix="/api", tags=["temporal-token-pool"])

# Churches
app.include_router(churches.router, prefix="/api", tags=["churches"])
app.include_router(church_roles.router, prefix="/api", tags=["church-roles"])
app.include_router(memberships.router, prefix="/api", tags=["memberships"])
app.include_router(church_member_roles.router, prefix="/api", tags=["church-member-roles"])

# Bands and their repertoire
app.include_router(bands.router, prefix="/api", tags=["bands"])
app.include_router(songs.router, prefix="/api", tags=["songs"])
app.include_router(lyrics.router, prefix="/api", tags=["lyrics"])
app.include_router(chords.router, prefix="/api", tags=["chords"])
app.include_router(events.router, prefix="/api", tags=["events"])
app.include_router(subscriptions.router, prefix="/api", tags=["subscriptions"])


async def _token_cleanup_loop():
    while True:
        await asyncio.sleep(token_pool.CLEANUP_INTERVAL_SECONDS)
        try:
            with Session(engine) as session:
                token_pool.clean_up_tokens(session)
        except Exception as e:
            logger.error(f"Token cleanup failed: {e}")


@app.on_event("startup")
async def on_startup():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    init_db()
    app.state.token_cleanup = asyncio.create_task(_token_cleanup_loop())
    logger.info(f"{settings.app_name} started with {len(app.routes)} routes")


@app.on_event("shutdown")
async def on_shutdown():
    task = getattr(app.state, "token_cleanup", None)
    if task:
        task.cancel()


@app.get("/api/health")
def health_check():
    return {"app_name": settings.app_name, "status": "healthy"}
