"""
MaskFit FastAPI application.

Endpoints:
  POST   /api/v1/sessions                       — open a capture session
  GET    /api/v1/sessions/{id}                  — phase and progress
  POST   /api/v1/sessions/{id}/frames           — submit one landmark frame
  POST   /api/v1/sessions/{id}/countdown        — advance the countdown timer
  POST   /api/v1/sessions/{id}/reset            — retry the capture
  DELETE /api/v1/sessions/{id}                  — close the session
  GET    /api/v1/sessions/{id}/result           — averaged measurements
  POST   /api/v1/sessions/{id}/recommendation   — size + mask type ranking
  POST   /api/v1/recommendations                — recommend from measurements
  GET    /health                                — health check
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from maskfit.config import config
from maskfit.api.middleware.auth import require_api_key
from maskfit.api.routes import recommendations, sessions
from maskfit.models.schemas import HealthResponse

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(name)-30s  %(levelname)-7s  %(message)s",
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    logging.getLogger(__name__).info("MaskFit %s started", config.version)
    yield


app = FastAPI(
    title=config.app_name,
    version=config.version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Route registration ─────────────────────────────────────────────────

app.include_router(
    sessions.router,
    prefix="/api/v1/sessions",
    tags=["sessions"],
    dependencies=[Depends(require_api_key)],
)
app.include_router(
    recommendations.router,
    prefix="/api/v1/recommendations",
    tags=["recommendations"],
    dependencies=[Depends(require_api_key)],
)


@app.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(status="ok", version=config.version)
