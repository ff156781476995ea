"""
Playback Coordinator
Scrobble lifecycle, batched history saves and the continue-watching list
"""
import asyncio
import logging
import time
from enum import Enum
from typing import Callable, List, Optional, Set

from pydantic import BaseModel

from streamhub.core.config import settings
from streamhub.core.errors import StreamHubError
from streamhub.models.history import ContentIds, ProgressUnit, WatchHistoryEntry
from streamhub.models.trakt import PlaybackProgress
from streamhub.services.history import WatchHistoryStore
from streamhub.services.identifiers import episode_video_id, parse_content_id
from streamhub.services.trakt import TraktClient
from streamhub.utils.helpers import clamp, deduplicate, parse_iso8601

logger = logging.getLogger(__name__)


class PlaybackEvent(str, Enum):
    """State transitions reported by the player"""
    FILE_LOADED = "file_loaded"
    PAUSED = "paused"
    RESUMED = "resumed"
    POSITION = "position"
    END_OF_FILE = "end_of_file"
    SESSION_SWITCHED = "session_switched"


class PlaybackSession(BaseModel):
    """What is currently playing and how far along it is"""
    meta_id: str
    meta_type: str = "movie"
    video_id: str
    title: str = ""
    poster_url: str = ""
    series_title: Optional[str] = None
    season: Optional[int] = None
    episode: Optional[int] = None
    binge_group: Optional[str] = None

    position: float = 0.0
    duration: float = 0.0
    playing: bool = False
    scrobble_started: bool = False

    @property
    def progress_percent(self) -> float:
        if self.duration <= 0:
            return 0.0
        return clamp(self.position / self.duration * 100.0, 0.0, 100.0)

    def to_entry(self) -> WatchHistoryEntry:
        return WatchHistoryEntry(
            meta_id=self.meta_id,
            meta_type=self.meta_type,
            video_id=self.video_id,
            title=self.title,
            poster_url=self.poster_url,
            series_title=self.series_title,
            season=self.season,
            episode=self.episode,
            position=self.position,
            duration=self.duration,
            binge_group=self.binge_group,
        )


class PlayerMessage(BaseModel):
    """One item on the player event channel"""
    event: PlaybackEvent
    position: Optional[float] = None
    duration: Optional[float] = None
    session: Optional[PlaybackSession] = None


def playback_to_entry(item: PlaybackProgress, now: float) -> Optional[WatchHistoryEntry]:
    """
    Convert a Trakt in-progress record into a history entry

    Trakt only reports a percentage, so the entry uses the PERCENT unit
    with duration 100. Records without an IMDb id are dropped.
    """
    last_watched = parse_iso8601(item.paused_at) or int(now)
    common = {
        "position": clamp(item.progress, 0.0, 100.0),
        "duration": 100.0,
        "unit": ProgressUnit.PERCENT,
        "last_watched": last_watched,
    }

    if item.episode is not None and item.show is not None:
        imdb = item.show.ids.imdb
        if not imdb:
            return None
        return WatchHistoryEntry(
            meta_id=imdb,
            meta_type="series",
            video_id=episode_video_id(imdb, item.episode.season, item.episode.number),
            title=item.episode.title or item.show.title or "",
            series_title=item.show.title,
            season=item.episode.season,
            episode=item.episode.number,
            **common,
        )

    if item.movie is not None:
        imdb = item.movie.ids.imdb
        if not imdb:
            return None
        return WatchHistoryEntry(
            meta_id=imdb,
            meta_type="movie",
            video_id=imdb,
            title=item.movie.title or "",
            **common,
        )
    return None


class PlaybackCoordinator:
    """
    Reacts to player events for one session at a time

    Tracker calls run as fire-and-forget tasks: their failures are logged
    and never reach the player. `generation` changes whenever the session
    changes so late completions can tell they belong to an old session.
    """

    def __init__(
        self,
        history: WatchHistoryStore,
        tracker: Optional[TraktClient] = None,
        clock: Callable[[], float] = time.time,
        debounce_seconds: Optional[float] = None,
    ):
        self.history = history
        self.tracker = tracker
        self.clock = clock
        self.debounce_seconds = (
            settings.SCROBBLE_DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        )
        self.session: Optional[PlaybackSession] = None
        self.generation = 0
        self.last_scrobble_time: Optional[float] = None
        self._dirty = False
        self._tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def begin_session(self, session: PlaybackSession):
        if self.session is not None:
            self.end_session()
        self.generation += 1
        self.session = session
        self._dirty = False
        logger.debug(f"Playback session {self.generation}: {session.video_id}")

    def end_session(self):
        """Close the current session (player switched to something else)"""
        session = self.session
        if session is None:
            return
        if session.scrobble_started:
            self._send("stop", force=True)
            session.scrobble_started = False
        self._commit_history()
        self.session = None
        self.generation += 1

    def handle(self, message: PlayerMessage):
        if message.event == PlaybackEvent.SESSION_SWITCHED:
            self.end_session()
            if message.session is not None:
                self.begin_session(message.session)
            return
        if message.session is not None:
            self.begin_session(message.session)
        self.handle_event(message.event, message.position, message.duration)

    def handle_event(
        self,
        event: PlaybackEvent,
        position: Optional[float] = None,
        duration: Optional[float] = None,
    ):
        session = self.session
        if session is None:
            return
        if position is not None:
            session.position = position
        if duration is not None:
            session.duration = duration

        if event == PlaybackEvent.FILE_LOADED:
            session.playing = True
            if not session.scrobble_started:
                self._start_scrobble(session)
        elif event == PlaybackEvent.PAUSED:
            if session.playing:
                session.playing = False
                if session.scrobble_started:
                    self._send("pause")
        elif event == PlaybackEvent.RESUMED:
            if not session.playing:
                session.playing = True
                if session.scrobble_started:
                    self._send("start")
        elif event == PlaybackEvent.POSITION:
            self._track_position(session)
        elif event == PlaybackEvent.END_OF_FILE:
            if session.duration > 0:
                session.position = session.duration
            session.playing = False
            if session.scrobble_started:
                self._send("stop", force=True)
                session.scrobble_started = False
            self._commit_history()
        elif event == PlaybackEvent.SESSION_SWITCHED:
            self.end_session()

    async def run(self, queue: "asyncio.Queue[Optional[PlayerMessage]]"):
        """Consume player messages until a None sentinel arrives"""
        while True:
            message = await queue.get()
            try:
                if message is None:
                    break
                self.handle(message)
            except Exception as e:  # noqa: BLE001
                logger.error(f"Error handling player event: {e}", exc_info=True)
            finally:
                queue.task_done()

    # ------------------------------------------------------------------
    # Scrobbling
    # ------------------------------------------------------------------

    def _tracking_enabled(self) -> bool:
        tracker = self.tracker
        return (
            tracker is not None
            and tracker.config.sync_progress
            and tracker.can_sync()
        )

    def _start_scrobble(self, session: PlaybackSession):
        ids = parse_content_id(session.video_id)
        if not ids.has_id():
            logger.debug(f"No trackable id in {session.video_id}")
            return
        session.scrobble_started = True
        self._send("start", force=True)

    def _send(self, action: str, force: bool = False):
        """
        Fire a scrobble unless debounced

        All actions share one timestamp; `force` skips the debounce check
        but still records the send time.
        """
        session = self.session
        if session is None or not self._tracking_enabled():
            return

        now = self.clock()
        if (
            not force
            and self.last_scrobble_time is not None
            and now - self.last_scrobble_time < self.debounce_seconds
        ):
            logger.debug(f"Debounced scrobble {action}")
            return
        self.last_scrobble_time = now

        ids = parse_content_id(session.video_id)
        task = asyncio.get_running_loop().create_task(
            self._scrobble(action, session.meta_type, ids, session.progress_percent, self.generation)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _scrobble(
        self, action: str, content_type: str, ids: ContentIds, progress: float, generation: int
    ):
        try:
            await self.tracker.scrobble(action, content_type, ids, progress)
        except StreamHubError as e:
            logger.warning(f"Scrobble {action} failed: {e}")
            return
        except Exception as e:  # noqa: BLE001
            logger.error(f"Scrobble {action} error: {e}", exc_info=True)
            return
        if generation != self.generation:
            logger.debug(f"Scrobble {action} finished after its session ended")

    async def drain(self):
        """Wait for in-flight scrobbles"""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Local history
    # ------------------------------------------------------------------

    def _track_position(self, session: PlaybackSession):
        self.history.update_position(
            session.meta_id, session.video_id, session.position, session.duration
        )
        self._dirty = True

    def _commit_history(self):
        session = self.session
        self._dirty = False
        if session is None or session.duration <= 0:
            return
        self.history.upsert(session.to_entry())

    def flush_history(self) -> bool:
        """Persist the current position if it changed since the last save"""
        if not self._dirty:
            return False
        session = self.session
        if session is None or session.duration <= 0:
            self._dirty = False
            return False
        self._commit_history()
        return True

    # ------------------------------------------------------------------
    # Continue watching
    # ------------------------------------------------------------------

    async def continue_watching(self, limit: Optional[int] = None) -> List[WatchHistoryEntry]:
        """
        Local resumable entries merged with Trakt's in-progress list

        Remote entries whose video id already exists locally are dropped;
        the result is sorted most recent first.
        """
        if limit is None:
            limit = settings.CONTINUE_WATCHING_LIMIT
        local = self.history.continue_watching(50)

        remote: List[WatchHistoryEntry] = []
        if self._tracking_enabled():
            try:
                playback = await self.tracker.get_playback()
            except StreamHubError as e:
                logger.warning(f"Could not fetch Trakt playback progress: {e}")
                playback = []
            now = self.clock()
            for item in playback:
                entry = playback_to_entry(item, now)
                if entry is not None:
                    remote.append(entry)

        merged = deduplicate(local + remote, key=lambda entry: entry.video_id)
        merged.sort(key=lambda entry: entry.last_watched, reverse=True)
        return merged[:limit]
