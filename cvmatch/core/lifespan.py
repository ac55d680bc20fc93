import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from cvmatch.ai.factory import get_embedding_provider
from cvmatch.analytics.db import init_db, purge_old_records
from cvmatch.core.analysis_store import get_analysis_store
from cvmatch.core.config import settings
from cvmatch.extraction import build_default_extractor
from cvmatch.services.pipeline import AnalysisPipeline
from cvmatch.services.progress import ProgressTracker

logger = logging.getLogger(__name__)

ANALYTICS_PURGE_INTERVAL_S = 3600


@asynccontextmanager
async def lifespan(app):
    init_db()
    store = get_analysis_store()
    store.init()

    tracker = ProgressTracker(ttl_s=settings.progress_ttl_s, retention_s=settings.progress_retention_s)
    app.state.tracker = tracker
    app.state.store = store
    app.state.pipeline = AnalysisPipeline(
        extractor=build_default_extractor(),
        embedding_provider=get_embedding_provider(),
        tracker=tracker,
        store=store,
    )

    stop_event = asyncio.Event()

    async def periodic_progress_purge() -> None:
        while not stop_event.is_set():
            try:
                app.state.tracker.purge_expired()
            except Exception as exc:  # pragma: no cover
                logger.warning("progress_purge_failed: %s", exc)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=settings.progress_sweep_interval_s)
            except asyncio.TimeoutError:
                continue

    async def periodic_analytics_purge() -> None:
        while not stop_event.is_set():
            try:
                deleted = purge_old_records()
                if any(deleted.values()):
                    logger.info("analytics_retention_purge deleted=%s", deleted)
            except Exception as exc:  # pragma: no cover
                logger.warning("analytics_retention_purge_failed: %s", exc)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=ANALYTICS_PURGE_INTERVAL_S)
            except asyncio.TimeoutError:
                continue

    tasks = [
        asyncio.create_task(periodic_progress_purge()),
        asyncio.create_task(periodic_analytics_purge()),
    ]
    yield
    stop_event.set()
    for task in tasks:
        if not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
