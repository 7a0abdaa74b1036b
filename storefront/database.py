"""
Database setup: engine and session factory built from Settings, plus the
request-scoped session dependency.
"""

import logging

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from storefront.config import Settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def create_session_factory(settings: Settings):
    connect_args = {}
    if settings.database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(settings.database_url, connect_args=connect_args)
    logger.info("Database engine created for %s", engine.url.render_as_string(hide_password=True))
    return engine, sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
