from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from microblog.config import AppConfig, configure_logging, load_config
from microblog.features.posts.api import router as posts_router
from microblog.infra.db import DbConfig, migrate, session
from microblog.infra.storage import LocalBlobStore


def create_app(cfg: AppConfig | None = None) -> FastAPI:
    cfg = cfg or load_config()
    configure_logging(cfg.log_level)
    with session(DbConfig(path=cfg.db_path)) as conn:
        migrate(conn)

    blobs = LocalBlobStore(cfg.blobs_dir, cfg.public_base_url)
    blobs.root.mkdir(parents=True, exist_ok=True)

    app = FastAPI(title="Microblog", version="0.1.0")
    app.state.cfg = cfg
    app.include_router(posts_router)
    app.mount("/images", StaticFiles(directory=blobs.root), name="images")
    return app
