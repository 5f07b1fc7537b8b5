from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from volstat.collectors.info import get_info
from volstat.collectors.mounts import MountRecord
from volstat.scheduler import PeriodicTask
from volstat.snapshot import SnapshotStore, build_registry

logger = logging.getLogger(__name__)


def create_app(
    mount: MountRecord,
    store: SnapshotStore,
    task: Optional[PeriodicTask] = None,
    config_path: Optional[str] = None,
) -> FastAPI:
    """HTTP app serving the store's snapshot.

    If a task is given it is started with the app and stopped on shutdown.
    """
    registry = build_registry(store)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        if task is not None:
            task.start()
            logger.info("periodic update every %ss", task.interval)
        try:
            yield
        finally:
            if task is not None:
                logger.info("stopping periodic update")
                task.stop()

    app = FastAPI(title="volstat", lifespan=lifespan)

    @app.get("/")
    def root():
        return Response(status_code=200)

    @app.get("/health")
    def health():
        return {"status": "ok", "service": "volstat"}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)

    @app.get("/info")
    def info():
        return get_info(mount, store.current(), config_path=config_path)

    return app
