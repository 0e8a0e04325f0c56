# apps/backend/main.py

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# -----------------------------------------------------------------------------
# Paths + Python path
# -----------------------------------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent  # .../apps/backend
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

# -----------------------------------------------------------------------------
# Load .env (MUST be before importing anything that reads settings)
# -----------------------------------------------------------------------------
ENV_PATH = BASE_DIR / ".env"
load_dotenv(ENV_PATH, override=True)

from tracker.core.config import settings  # noqa: E402

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# -----------------------------------------------------------------------------
# Create app
# -----------------------------------------------------------------------------
app = FastAPI(title="Sector71 Tracker API", version="0.1.0")

# -----------------------------------------------------------------------------
# CORS (the landing page is served from other origins)
# -----------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

# -----------------------------------------------------------------------------
# DB init
# -----------------------------------------------------------------------------
from tracker.db import Base, engine  # noqa: E402
import tracker.models.records  # noqa: E402,F401  (registers tables)

if engine is not None:

    @app.on_event("startup")
    def _startup_create_tables():
        # No migrations yet: create tables if they don't exist
        Base.metadata.create_all(bind=engine)


# -----------------------------------------------------------------------------
# Routers
# -----------------------------------------------------------------------------
from tracker.api.collector_routes import router as collector_router  # noqa: E402

app.include_router(collector_router, prefix="/api", tags=["collector"])


# -----------------------------------------------------------------------------
# Basic health check
# -----------------------------------------------------------------------------
@app.get("/health")
def health():
    return {"status": "ok", "store_configured": engine is not None}


# -----------------------------------------------------------------------------
# Runtime debug (which file is running + whether env is visible)
# -----------------------------------------------------------------------------
@app.get("/debug/runtime")
def debug_runtime():
    db_url = os.getenv("DATABASE_URL")

    return {
        "main_file": __file__,
        "cwd": os.getcwd(),
        "sys_executable": sys.executable,
        "env_path": str(ENV_PATH),
        "env_exists": ENV_PATH.exists(),
        "database_url_present": db_url is not None,
        "database_url_len": 0 if db_url is None else len(db_url),
        "collector_base_url": settings.collector_base_url,
        "pythonpath_has_basedir": str(BASE_DIR) in sys.path,
    }
