# backend/smartwork/main.py

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from smartwork.api.auth_routes import router as auth_router
from smartwork.api.me_routes import router as me_router
from smartwork.api.routes import router as api_router
from smartwork.api.user_routes import router as user_router
from smartwork.core.config import settings
from smartwork.core.database import Base, SessionLocal, engine
from smartwork.core.errors import (
    SmartWorkError,
    smartwork_error_handler,
    validation_error_handler,
)
from smartwork.core.sessions import SessionRegistry
from smartwork.seed import seed_admin_if_empty
from smartwork.services.notifications import Notifier, build_notifier

logger = logging.getLogger("smartwork")


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def init_db() -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_admin_if_empty(db)
    finally:
        db.close()


def create_app(
    *,
    sessions: Optional[SessionRegistry] = None,
    notifier: Optional[Notifier] = None,
    run_startup: bool = True,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if run_startup:
            init_db()
        logger.info("SmartWork API started (%s)", settings.app_env)
        yield
        app.state.notifier.shutdown(wait=True)

    app = FastAPI(title="SmartWork API", version="0.1.0", lifespan=lifespan)

    # process-lifetime state, replaced by tests
    app.state.sessions = sessions if sessions is not None else SessionRegistry()
    app.state.notifier = notifier if notifier is not None else build_notifier(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["Authorization", "Content-Type"],
    )

    app.add_exception_handler(SmartWorkError, smartwork_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(auth_router, prefix="/auth", tags=["auth"])
    app.include_router(me_router, prefix="/me", tags=["me"])
    app.include_router(user_router, prefix="/users", tags=["users"])
    app.include_router(api_router, tags=["requests"])

    @app.get("/")
    def root():
        return {"message": "SmartWork API"}

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


configure_logging(settings.log_level)
app = create_app()
