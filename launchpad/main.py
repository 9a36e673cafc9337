import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from launchpad.api.router import api_router
from launchpad.core.config import Settings, get_settings
from launchpad.core.logging_config import configure_logging
from launchpad.core.security import SessionIssuer
from launchpad.db.base import Base
from launchpad.db.session import create_db_engine, create_session_factory
from launchpad.models import User  # noqa: F401  (registers the table)
from launchpad.services.nonce_store import build_nonce_store

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Launchpad Auth")

    # process-wide state, built once and shared by every request
    app.state.settings = settings
    app.state.engine = create_db_engine(settings.database_url)
    app.state.session_factory = create_session_factory(app.state.engine)
    app.state.nonce_store = build_nonce_store(settings)
    app.state.session_issuer = SessionIssuer.from_settings(settings)

    Base.metadata.create_all(bind=app.state.engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )
    app.include_router(api_router, prefix="/api")

    logger.info("Launchpad auth ready (nonce backend: %s)", settings.nonce_backend)
    return app


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run("launchpad.main:create_app", factory=True, host=settings.host, port=settings.port)
