"""FastAPI application entrypoint. No business logic; only wiring, logging, and startup."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from secureship.api import webhook
from secureship.api.v1 import router as v1_router
from secureship.core.config import settings
from secureship.services.storage import build_scan_store

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Load persisted scan reports once; a bad snapshot starts an empty store."""
    store = build_scan_store(settings)
    store.load()
    app.state.scan_store = store
    yield


app = FastAPI(
    title="SecureShip API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.APP_ENV == "dev" else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(v1_router, prefix=settings.API_V1_PREFIX)
app.include_router(webhook.router, tags=["webhook"])


@app.get("/")
def root() -> dict[str, str]:
    """Root route; minimal payload for discovery."""
    return {
        "name": "SecureShip",
        "description": "AI-powered security review for GitHub pull requests",
        "webhook": "POST /webhook",
        "api": settings.API_V1_PREFIX,
    }
