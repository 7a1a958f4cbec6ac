# league_portal/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from league_portal.core.config import settings
from league_portal.core.logging import get_logger
from league_portal.db.engine import init_db
from league_portal.api import routes_admin, routes_auth, routes_league, routes_manager, routes_me
from league_portal.deps import admin_panel, manager_panel, resolver
from league_portal.views.base import reset_on_session_change

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings.validate_at_startup()
    if settings.PERSIST_SESSION:
        init_db()
    # privileged data must not outlive the session that loaded it
    unsubscribe = resolver.subscribe(reset_on_session_change(admin_panel, manager_panel))
    await resolver.start()
    logger.info("Session resolved at startup: %s", resolver.state.value)
    try:
        yield
    finally:
        unsubscribe()
        await resolver.close()


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

logger.info("CORS allow_origins = %s", settings.CORS_ORIGINS)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=600,
)

# Routers
app.include_router(routes_auth.router)
app.include_router(routes_me.router)
app.include_router(routes_admin.router)
app.include_router(routes_manager.router)
app.include_router(routes_league.router)


@app.get("/health")
def health():
    return {"ok": True, "env": settings.APP_ENV, "session": resolver.state.value}
