"""
Forbo - FastAPI Application
===========================

Builds the application, loads the draws history on startup when
FORBO_DRAWS_CSV points at a CSV with columns [draw_date, n1..n5, s1, s2],
and serves it with uvicorn (HOST, PORT, LOG_LEVEL, optionally from .env).
"""

import os
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Mapping, Optional

import pandas as pd
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from . import __version__
from .api import forbo_router, set_engine
from .config import ForboConfig, load_config
from .engine import ForboEngine


def load_draws_csv(path: str) -> pd.DataFrame:
    """Read a draws history CSV"""
    draws_df = pd.read_csv(path)
    logger.info(f"Loaded {len(draws_df)} draws from {path}")
    return draws_df


def build_engine(config: Optional[ForboConfig] = None, draws_path: Optional[str] = None) -> ForboEngine:
    """Engine with statistics when a draws file is available, empty otherwise"""
    config = config or load_config()
    draws_path = draws_path or os.getenv("FORBO_DRAWS_CSV")
    if draws_path and os.path.exists(draws_path):
        return ForboEngine.from_draws(load_draws_csv(draws_path), config=config)
    if draws_path:
        logger.warning(f"Draws file {draws_path} not found, starting without statistics")
    return ForboEngine(config=config)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup...")
    set_engine(build_engine())
    yield
    logger.info("Application shutdown...")
    set_engine(None)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Forbo EuroMillions Engine",
        description="Candidate-pool ranking and weighted selection of numbers and stars.",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    app.include_router(forbo_router)

    @app.get("/health")
    def health():
        return {"status": "ok", "version": __version__}

    return app


app = create_app()


UVICORN_LOG_LEVELS = ("critical", "error", "warning", "info", "debug", "trace")


@dataclass(frozen=True)
class ServerSettings:
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "info"


def server_settings(env: Optional[Mapping[str, str]] = None) -> ServerSettings:
    """HOST, PORT and LOG_LEVEL from the environment; bad values fall back with a warning"""
    env = os.environ if env is None else env
    defaults = ServerSettings()

    port = defaults.port
    raw_port = env.get("PORT")
    if raw_port:
        try:
            port = int(raw_port)
        except ValueError:
            logger.warning(f"Invalid PORT '{raw_port}', using {defaults.port}")

    log_level = env.get("LOG_LEVEL", defaults.log_level).lower()
    if log_level not in UVICORN_LOG_LEVELS:
        logger.warning(f"Invalid LOG_LEVEL '{log_level}', using {defaults.log_level}")
        log_level = defaults.log_level

    return ServerSettings(host=env.get("HOST", defaults.host), port=port, log_level=log_level)


def run() -> None:
    """Serve the application with uvicorn, reading .env first"""
    import uvicorn

    load_dotenv()
    settings = server_settings()
    logger.info(f"Starting Forbo on {settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level)
