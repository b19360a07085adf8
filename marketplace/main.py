import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy.orm import configure_mappers

from marketplace.config import Settings
from marketplace.db import Base, build_engine, build_session_factory
from marketplace.errors import install_error_handlers

# models have to be imported before create_all()
import marketplace.models  # noqa: F401

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # ==== DB ====
    engine = build_engine(settings)
    configure_mappers()
    Base.metadata.create_all(bind=engine)

    # ==== FastAPI app ====
    app = FastAPI(title=settings.app_name)
    app.state.settings = settings
    app.state.session_factory = build_session_factory(engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)

    # ==== Routers ====
    # admin router first: its static paths (/products/pending, ...) must win over /products/{id}
    from marketplace.routers import admin_products, admin_users, auth, products

    app.include_router(auth.router)
    app.include_router(admin_products.router)
    app.include_router(products.router)
    app.include_router(admin_users.router)

    # ==== Static ====
    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=str(upload_dir)), name="uploads")

    @app.get("/health")
    def health():
        return {"status": "ok", "env": settings.env}

    logger.info("%s started (env=%s)", settings.app_name, settings.env)
    return app


def run():
    import uvicorn

    settings = Settings.from_env()
    uvicorn.run("marketplace.main:create_app", factory=True, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
