from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI

from pagecorpus.app.routes import build_result_router
from pagecorpus.core.config import Settings, get_settings
from pagecorpus.runtime.registry import ResultManagerRegistry


def create_app(settings: Settings, registry: ResultManagerRegistry | None = None) -> FastAPI:
    registry = registry or ResultManagerRegistry(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        try:
            yield
        finally:
            await registry.shutdown()

    app = FastAPI(title="pagecorpus", version="0.1.0", lifespan=lifespan)
    app.include_router(build_result_router(settings=settings, registry=registry))

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "time": datetime.now(UTC).isoformat()}

    return app


def get_app() -> FastAPI:
    return create_app(get_settings())
