from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from grouptherapy.core.config import Config, load_config
from grouptherapy.core.db_adapter import init_schema
from grouptherapy.domain.auth import SessionStore
from grouptherapy.domain.radio import (
    ListenerCountEstimator,
    MetadataResolver,
    ScheduleStore,
)

from .broadcaster import RadioBroadcaster


def create_app(
    config: Optional[Config] = None,
    store: Optional[ScheduleStore] = None,
    resolver: Optional[MetadataResolver] = None,
    init_db: bool = True,
) -> FastAPI:
    """Build the API application.

    The broadcaster is created and torn down by the lifespan, so each app
    instance (and each test client) gets its own listener registry.
    """
    config = config or load_config()
    store = store or ScheduleStore()
    resolver = resolver or MetadataResolver(
        store,
        default_stream_url=config.radio.default_stream_url,
        listener_estimator=ListenerCountEstimator(
            config.radio.listener_count_min, config.radio.listener_count_spread
        ),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if init_db:
            await run_in_threadpool(init_schema)

        broadcaster = RadioBroadcaster(
            resolver,
            keepalive_interval=config.radio.keepalive_interval_seconds,
            channel_queue_size=config.radio.channel_queue_size,
        )
        await broadcaster.start()
        app.state.broadcaster = broadcaster
        try:
            yield
        finally:
            await broadcaster.shutdown()

    app = FastAPI(title="GroupTherapy Radio API", version="1.0.0", lifespan=lifespan)
    app.state.config = config
    app.state.store = store
    app.state.resolver = resolver
    app.state.sessions = SessionStore(ttl_hours=config.auth.session_ttl_hours)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    from web.backend.routers import auth, radio

    app.include_router(auth.router, prefix="/api")
    app.include_router(radio.router, prefix="/api")

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    logger.debug(f"API app created (default stream {config.radio.default_stream_url})")
    return app


app = create_app()
