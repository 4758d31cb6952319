"""
Tabula: schema-driven data-access engine.
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import data, health, permissions, tables
from config import settings
from core.errors import EngineError
from core.factory import build_services

# ── Logging ──────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger("tabula")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Tabula starting up…")
    app.state.services = build_services(settings)
    yield
    app.state.services.dispose()
    logger.info("Tabula shutting down.")


# ── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="Tabula: schema-driven data-access engine",
    description="Runtime schema introspection, safe dynamic queries and RLS policy gap analysis.",
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS ──────────────────────────────────────────────────────────────────────
origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Errors ────────────────────────────────────────────────────────────────────
@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# ── Routers ───────────────────────────────────────────────────────────────────
app.include_router(health.router,      prefix="/api")
app.include_router(tables.router,      prefix="/api")
app.include_router(data.router,        prefix="/api")
app.include_router(permissions.router, prefix="/api")
