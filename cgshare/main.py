# cgshare/main.py

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from cgshare import config
from cgshare.db.base import async_engine, create_tables
from cgshare.middleware.error_handler import ErrorHandlerMiddleware, setup_exception_handlers
from cgshare.middleware.rate_limiter import RateLimitMiddleware
from cgshare.observability.logger import configure_logging
from cgshare.routers.entries import router as entries_router
from cgshare.routers.health import router as health_router
from cgshare.utils.logger import log_info


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(config)
    if config.DB_AUTO_CREATE:
        await create_tables()
    log_info("Share service started")
    yield
    await async_engine.dispose()
    log_info("Share service stopped")


def create_app(rate_limit: int = config.settings.RATE_LIMIT_PER_MINUTE) -> FastAPI:
    app = FastAPI(
        title="CodeGame Share",
        description="Short-lived share links for CodeGame games, spectator views and sessions",
        version="1.0.0",
        lifespan=lifespan,
    )

    # First added = innermost; the error handler wraps everything else
    if rate_limit > 0:
        app.add_middleware(RateLimitMiddleware, limit=rate_limit)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(ErrorHandlerMiddleware, debug=config.DEBUG)

    setup_exception_handlers(app)

    @app.get("/", include_in_schema=False)
    async def root():
        return RedirectResponse(config.settings.README_URL, status_code=307)

    @app.get("/favicon.ico", include_in_schema=False)
    async def favicon():
        """Return empty response for favicon so it is not looked up as an entry."""
        return Response(status_code=204)

    # Health routes go first: /{entry_id} would swallow them
    app.include_router(health_router)
    app.include_router(entries_router)

    if config.settings.OTEL_ENABLED:
        from cgshare.utils.telemetry import init_otel
        init_otel(app=app, engine=async_engine)

    return app


app = create_app()


def get_app() -> FastAPI:
    return app


if __name__ == "__main__":
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())
