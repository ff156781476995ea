"""
Background Tasks
Periodic flush of in-progress watch history
"""
import asyncio
import logging
from typing import Optional

from streamhub.core.config import settings
from streamhub.services.playback import PlaybackCoordinator

logger = logging.getLogger(__name__)


class HistoryFlushTask:
    """Saves the playing position at a fixed interval while it is dirty"""

    def __init__(self, coordinator: PlaybackCoordinator, interval_seconds: Optional[float] = None):
        self.coordinator = coordinator
        self.interval_seconds = interval_seconds or settings.HISTORY_SAVE_INTERVAL_SECONDS
        self.task: Optional[asyncio.Task] = None
        self.running = False

    async def background_loop(self):
        self.running = True
        logger.info(f"History flush started (interval: {self.interval_seconds}s)")

        while self.running:
            try:
                await asyncio.sleep(self.interval_seconds)
                if self.coordinator.flush_history():
                    logger.debug("Flushed playback position to watch history")
            except asyncio.CancelledError:
                logger.info("History flush cancelled")
                break
            except Exception as e:
                logger.error(f"Error in history flush loop: {e}", exc_info=True)
                # Continue running despite errors

    def start(self):
        """Start the background task"""
        if self.task is None or self.task.done():
            self.task = asyncio.create_task(self.background_loop())

    async def stop(self):
        """Stop the background task and write any pending position"""
        self.running = False
        if self.task and not self.task.done():
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
        self.coordinator.flush_history()
        logger.info("History flush stopped")
