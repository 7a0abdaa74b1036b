import logging
import os
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from storefront.config import Settings
from storefront.database import Base, create_session_factory
from storefront.errors import register_exception_handlers
from storefront.routers import admin, auth, cart, categories, checkout, products
from storefront.security import Authenticator
from storefront.uploads import ImageStore
from storefront.users import UserService

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = FastAPI(
        title="Storefront API",
        description="Products, categories, cart, checkout and admin for an online store",
        version="1.0.0",
    )

    engine, session_factory = create_session_factory(settings)
    Base.metadata.create_all(bind=engine)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.auth = Authenticator(settings)
    app.state.images = ImageStore(settings.upload_dir, settings.max_upload_bytes)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    @app.get("/", tags=["Root"])
    def read_root():
        return {"success": True, "message": "Storefront API is running!"}

    @app.get("/api/health", tags=["Root"], summary="Liveness check")
    def health():
        return {
            "success": True,
            "message": "Server is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    for module in (auth, products, categories, cart, checkout, admin):
        app.include_router(module.router)
    app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")

    if settings.admin_email and settings.admin_password and settings.admin_username:
        with session_factory() as db:
            admin_user = UserService(db, app.state.auth).ensure_admin(
                settings.admin_username, settings.admin_email, settings.admin_password
            )
            logger.info("Admin account ready: %s", admin_user.email)

    return app


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(create_app(), host="0.0.0.0", port=port)
