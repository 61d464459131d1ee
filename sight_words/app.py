from __future__ import annotations

import json
import logging
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from sight_words import __version__
from sight_words.api.schemas import SightWordsCreate, SightWordsUpdate, format_validation_errors
from sight_words.config import DEFAULT_USER_ID, AppConfig, load_config
from sight_words.storage.db import SqliteStore
from sight_words.storage.store import MemoryStore, SettingsStore, seed_defaults

logger = logging.getLogger(__name__)

MAX_LOG_LINE = 80


def build_store(config: AppConfig) -> SettingsStore:
    if config.storage == "sqlite":
        return SqliteStore(config.db_path)
    return MemoryStore()


def get_store(request: Request) -> SettingsStore:
    return request.app.state.store


def create_app(store: SettingsStore | None = None, *, seed: bool | None = None) -> FastAPI:
    config = load_config()
    store = store if store is not None else build_store(config)
    seed = config.seed_defaults if seed is None else seed

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        store.initialize()
        if seed:
            seed_defaults(store)
        yield

    app = FastAPI(title="Sight Words", version=__version__, lifespan=lifespan)
    app.state.store = store
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_api_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        if request.url.path.startswith("/api"):
            duration_ms = int((time.perf_counter() - start) * 1000)
            line = f"{request.method} {request.url.path} {response.status_code} in {duration_ms}ms"
            if len(line) > MAX_LOG_LINE:
                line = line[: MAX_LOG_LINE - 1] + "…"
            logger.info(line)
        return response

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.get("/api/sight-words")
    def get_sight_words(store: SettingsStore = Depends(get_store)):
        try:
            record = store.get(DEFAULT_USER_ID)
        except Exception:
            logger.exception("failed to fetch sight words")
            return JSONResponse(status_code=500, content={"message": "Failed to fetch sight words"})
        if record is None:
            return JSONResponse(status_code=404, content={"message": "Sight words configuration not found"})
        return record.model_dump(by_alias=True)

    @app.post("/api/sight-words")
    async def save_sight_words(request: Request, store: SettingsStore = Depends(get_store)):
        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return _invalid({"_errors": ["request body must be valid JSON"]})

        try:
            data = SightWordsUpdate.model_validate(payload)
        except ValidationError as exc:
            return _invalid(format_validation_errors(exc))

        try:
            existing = store.get(DEFAULT_USER_ID)
            if existing is not None:
                updated = store.update(DEFAULT_USER_ID, data)
                if updated is None:
                    raise RuntimeError("sight words record vanished during update")
                return JSONResponse(status_code=200, content=updated.model_dump(by_alias=True))
            created = store.create(SightWordsCreate(user_id=DEFAULT_USER_ID, **data.model_dump()))
            return JSONResponse(status_code=201, content=created.model_dump(by_alias=True))
        except Exception:
            logger.exception("failed to update sight words")
            return JSONResponse(status_code=500, content={"message": "Failed to update sight words"})

    return app


def _invalid(errors: dict) -> JSONResponse:
    return JSONResponse(status_code=400, content={"message": "Invalid data provided", "errors": errors})
