from fastapi import FastAPI
import asyncio
import logging
import os
from pathlib import Path
from fastapi.middleware.cors import CORSMiddleware

from eventnexus.api.router import api_router
from eventnexus.core.config import settings
from eventnexus.db.init_db import create_tables, seed_demo_data
from eventnexus.services.expiry_scheduler import expiry_loop
from eventnexus.services.notification_ws import manager as ws_manager

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("eventnexus")

def _run_migrations_if_needed():
    """Apply Alembic migrations automatically in production if enabled.

    Controlled by env var AUTO_APPLY_MIGRATIONS (default: '1'). Safe to run repeatedly.
    """
    if settings.env.lower() != "prod":
        return
    if os.getenv("AUTO_APPLY_MIGRATIONS", "1") != "1":
        return
    from alembic import command
    from alembic.config import Config
    alembic_ini = Path(__file__).resolve().parents[1] / "alembic.ini"
    if not alembic_ini.exists():
        logger.warning("[migrate] alembic.ini not found at %s, skipping auto-migrations", alembic_ini)
        return
    cfg = Config(str(alembic_ini))
    # Ensure script_location resolves correctly when launched from arbitrary CWD
    cfg.set_main_option("script_location", str(Path(__file__).resolve().parents[1] / "alembic"))
    logger.info("[migrate] Applying Alembic migrations -> head ...")
    try:
        command.upgrade(cfg, "head")
    except Exception:  # pragma: no cover
        # Do not kill the app on migration failure; can be retried manually.
        logger.exception("[migrate] Migration failed")
        return
    logger.info("[migrate] Migrations applied successfully")

app = FastAPI(title=settings.app_name, version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)

_background: set[asyncio.Task] = set()

@app.on_event("startup")
async def startup():
    _run_migrations_if_needed()
    if settings.env.lower() in {"dev", "development"}:
        create_tables()
        seed_demo_data()
    ws_manager.bind_loop(asyncio.get_running_loop())
    task = asyncio.create_task(expiry_loop())
    _background.add(task)
    task.add_done_callback(_background.discard)

@app.on_event("shutdown")
async def shutdown():
    for task in list(_background):
        task.cancel()
    ws_manager.bind_loop(None)
