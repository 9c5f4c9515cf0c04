# core/sync.py
import logging
import threading
from typing import Callable, Optional

from .discord_rpc import PresenceChannel
from .errors import FetchError, PresenceError
from .models import PlaybackRecord

logger = logging.getLogger(__name__)

POLL_SECONDS = 15

StatusSink = Callable[[Optional[str]], None]


def identity_key(np: PlaybackRecord) -> str:
    return f"{np.title}-{np.play_state.value}-{np.progress_text() or ''}"


class SyncLoop:
    """
    Polls Plex and mirrors the first session onto Discord.

    Fetch and presence errors are logged and never stop the loop. The
    status sink gets the tray line on change, or None once playback ends.
    """

    def __init__(
        self,
        fetcher,
        channel: PresenceChannel,
        status_sink: Optional[StatusSink] = None,
        poll_seconds: float = POLL_SECONDS,
        stop_event: Optional[threading.Event] = None,
    ):
        self.fetcher = fetcher
        self.channel = channel
        self.status_sink = status_sink
        self.poll_seconds = poll_seconds
        self._stop = stop_event or threading.Event()
        self._last_key: Optional[str] = None

    def stop(self) -> None:
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def _emit(self, text: Optional[str]) -> None:
        if self.status_sink:
            self.status_sink(text)

    def _clear(self) -> None:
        try:
            self.channel.clear_presence()
        except PresenceError as e:
            logger.warning("Discord clear failed: %s", e)

    def run_once(self) -> None:
        try:
            np = self.fetcher.fetch()
        except FetchError as e:
            logger.warning("Failed to get Plex status: %s", e)
            return

        if np is None:
            if self._last_key is not None:
                logger.info("Nothing playing")
                self._last_key = None
                self._emit(None)
                self._clear()
            return

        key = identity_key(np)
        if key != self._last_key:
            logger.info("Now playing: %s (%s)", np.display_title(), np.state_text())
            self._last_key = key
            self._emit(np.status_text())

        # Presence only while actively playing
        if np.playing:
            try:
                self.channel.update_presence(np)
            except PresenceError as e:
                logger.warning("Discord update failed: %s", e)
        else:
            self._clear()

    def run(self) -> None:
        logger.info("Watching Plex every %ss", self.poll_seconds)
        try:
            while not self._stop.is_set():
                self.run_once()
                # Wakes as soon as stop() is called
                self._stop.wait(self.poll_seconds)
        finally:
            self.channel.disconnect()
            logger.info("Sync loop stopped")
