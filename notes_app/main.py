# notes_app/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from notes_app.core.config import settings
from notes_app.core.db import Base, engine
from notes_app.core.errors import register_exception_handlers
from notes_app.core.logging import configure_logging, get_logger

# models register their tables on Base
from notes_app.models.connection import Connection  # noqa: F401
from notes_app.models.session import Session  # noqa: F401
from notes_app.models.user import Password, User  # noqa: F401
from notes_app.models.verification import Verification  # noqa: F401

from notes_app.routers.auth import router as auth_router
from notes_app.routers.health import router as health_router
from notes_app.routers.oauth import router as oauth_router
from notes_app.routers.settings import router as settings_router
from notes_app.routers.users import router as users_router
from notes_app.routers.verify import router as verify_router

configure_logging(settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info("database ready (%s)", engine.url.get_backend_name())
    yield


app = FastAPI(title="Epic Notes API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

routers = [
    health_router,
    auth_router,
    verify_router,
    oauth_router,
    settings_router,
    users_router,
]

for r in routers:
    app.include_router(r)
