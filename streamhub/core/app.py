"""
FastAPI Application Factory
Wires the StreamHub components and exposes them to the UI process
"""
import asyncio
import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Callable, Optional

import aiohttp
from fastapi import FastAPI

from streamhub.api.endpoints import addons, health, history, playback, streams
from streamhub.core.config import VERSION, settings
from streamhub.services.aggregator import AddonAggregator
from streamhub.services.background import HistoryFlushTask
from streamhub.services.client import AddonClient
from streamhub.services.history import WatchHistoryStore
from streamhub.services.playback import PlaybackCoordinator, PlayerMessage
from streamhub.services.registry import AddonRegistry
from streamhub.services.trakt import TraktClient, TraktConfigStore

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


class StreamHub:
    """Owns one instance of every core component"""

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        addon_session: Optional[aiohttp.ClientSession] = None,
        trakt_session: Optional[aiohttp.ClientSession] = None,
        clock: Callable[[], float] = time.time,
    ):
        data_dir = data_dir or settings.DATA_DIR

        self.client = AddonClient(addon_session)
        self.registry = AddonRegistry(self.client, data_dir / settings.addons_path.name)
        self.aggregator = AddonAggregator(self.registry, self.client)

        self.history = WatchHistoryStore(data_dir / settings.history_path.name, clock=clock)
        self.trakt_store = TraktConfigStore(data_dir / settings.trakt_path.name)
        self.trakt = TraktClient(self.trakt_store, session=trakt_session, clock=clock)

        self.playback = PlaybackCoordinator(self.history, self.trakt, clock=clock)
        self.flush_task = HistoryFlushTask(self.playback)

        self.events: Optional[asyncio.Queue] = None
        self._events_task: Optional[asyncio.Task] = None

    def load(self):
        self.registry.load()
        self.history.load()
        self.trakt_store.load()

    def start(self):
        """Start the player event consumer and the history flush timer"""
        if self._events_task is None or self._events_task.done():
            self.events = asyncio.Queue()
            self._events_task = asyncio.create_task(self.playback.run(self.events))
        self.flush_task.start()

    def publish(self, message: PlayerMessage) -> bool:
        """Queue a player event; False when the consumer is not running"""
        if self.events is None or self._events_task is None or self._events_task.done():
            return False
        self.events.put_nowait(message)
        return True

    async def close(self):
        if self._events_task is not None and not self._events_task.done():
            self.events.put_nowait(None)
            await self._events_task
        self.playback.end_session()
        await self.flush_task.stop()
        await self.playback.drain()
        await self.client.close()
        await self.trakt.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown"""
    hub: StreamHub = app.state.hub

    # Startup
    logger.info("Starting StreamHub")
    logger.info(f"Data directory: {settings.DATA_DIR}")
    hub.load()
    hub.start()

    yield

    # Shutdown
    logger.info("Shutting down StreamHub")
    await hub.close()


def create_app(hub: Optional[StreamHub] = None) -> FastAPI:
    """Create and configure FastAPI application"""

    app = FastAPI(
        title="StreamHub",
        description="Addon aggregation and playback continuity for the desktop player",
        version=VERSION,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )
    app.state.hub = hub or StreamHub()

    # Include routers
    app.include_router(health.router)
    app.include_router(addons.router)
    app.include_router(streams.router)
    app.include_router(history.router)
    app.include_router(playback.router)

    return app
