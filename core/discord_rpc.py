#core/discord_rpc.py
import logging
import time
from typing import Callable, Optional

from pypresence import Presence
from pypresence.types import ActivityType

from .errors import (
    BackoffError,
    NotConnectedError,
    PresenceError,
    TooSoonError,
    TransportConnectError,
    TransportSendError,
)
from .models import MediaKind, PlaybackRecord

logger = logging.getLogger(__name__)


# APP ID
APP_CLIENT_ID = "1451961488427188355"

RECONNECT_DELAY_SECONDS = 10
MAX_CONSECUTIVE_FAILURES = 3
BACKOFF_SECONDS = RECONNECT_DELAY_SECONDS * 3

# Assets uploaded to the Discord application; Discord can't fetch Plex art.
_DEFAULT_IMAGES = {
    MediaKind.MOVIE: ("movie", "Watching a Movie"),
    MediaKind.EPISODE: ("tv", "Watching TV"),
    MediaKind.TRACK: ("music", "Listening to Music"),
    MediaKind.UNKNOWN: ("plex", "Plex"),
}

_ACTIVITY_TYPES = {
    MediaKind.MOVIE: ActivityType.WATCHING,
    MediaKind.EPISODE: ActivityType.WATCHING,
    MediaKind.TRACK: ActivityType.LISTENING,
    MediaKind.UNKNOWN: ActivityType.PLAYING,
}


def _external_url(reference: Optional[str]) -> Optional[str]:
    if reference and reference.startswith(("http://", "https://")):
        return reference
    return None


def build_activity(np: PlaybackRecord, now: float) -> dict:
    """Render a record into keyword arguments for ``Presence.update``."""
    details = np.display_title()

    artwork_url = _external_url(np.artwork_reference)
    if artwork_url:
        large_image, large_text = artwork_url, details
    else:
        large_image, large_text = _DEFAULT_IMAGES[np.media_kind]

    payload = {
        "details": details[:128],
        "state": np.state_line()[:128],
        "large_image": large_image,
        "large_text": large_text[:128],
        "small_image": "plex",
        "small_text": "Plex",
        "activity_type": _ACTIVITY_TYPES[np.media_kind],
    }

    # Progress bar only while playing
    if np.playing and np.duration_ms is not None and np.elapsed_ms is not None:
        remaining_ms = np.duration_ms - np.elapsed_ms
        payload["end"] = int(now) + int(remaining_ms / 1000)

    # Discord rejects empty strings
    return {k: v for k, v in payload.items() if v != ""}


class PresenceChannel:
    """
    Discord connection owned by the sync worker.

    Reconnects are rate limited to one per RECONNECT_DELAY_SECONDS. After
    MAX_CONSECUTIVE_FAILURES updates fail in a row, updates are refused
    until BACKOFF_SECONDS have passed since the last connect attempt.
    """

    def __init__(
        self,
        client_id: str = APP_CLIENT_ID,
        presence_factory: Callable[[str], Presence] = Presence,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ):
        self.client_id = client_id
        self._presence_factory = presence_factory
        self._clock = clock
        self._wall_clock = wall_clock

        self._rpc = None
        self.last_connect_attempt: Optional[float] = None
        self.consecutive_failures = 0

    @property
    def is_connected(self) -> bool:
        return self._rpc is not None

    def connect(self) -> None:
        now = self._clock()
        if (
            self.last_connect_attempt is not None
            and now - self.last_connect_attempt < RECONNECT_DELAY_SECONDS
        ):
            raise TooSoonError("Too soon to reconnect to Discord")

        self.last_connect_attempt = now
        self.disconnect()

        logger.info("Connecting to Discord…")
        try:
            rpc = self._presence_factory(self.client_id)
            rpc.connect()
        except Exception as e:
            raise TransportConnectError(f"Discord connect failed: {e}") from e

        self._rpc = rpc
        self.consecutive_failures = 0
        logger.info("Connected to Discord")

    def disconnect(self) -> None:
        """Close the connection if open. Never raises."""
        rpc, self._rpc = self._rpc, None
        if rpc is None:
            return
        try:
            rpc.close()
            logger.info("Disconnected from Discord")
        except Exception as e:
            logger.debug("Ignoring error while closing Discord connection: %s", e)

    def update_presence(self, np: PlaybackRecord) -> None:
        if self.consecutive_failures >= MAX_CONSECUTIVE_FAILURES:
            if (
                self.last_connect_attempt is not None
                and self._clock() - self.last_connect_attempt < BACKOFF_SECONDS
            ):
                raise BackoffError("Backing off due to repeated failures")
            logger.info("Backoff window elapsed, retrying Discord")
            self.consecutive_failures = 0

        if self._rpc is None:
            try:
                self.connect()
            except PresenceError:
                self.consecutive_failures += 1
                raise

        rpc = self._rpc
        if rpc is None:
            self.consecutive_failures += 1
            raise NotConnectedError("No Discord connection")

        payload = build_activity(np, self._wall_clock())
        try:
            rpc.update(**payload)
        except Exception as e:
            logger.warning("Failed to set activity: %s", e)
            self.consecutive_failures += 1
            # Force a fresh connection next time
            self.disconnect()
            raise TransportSendError(f"Presence update failed: {e}") from e

        self.consecutive_failures = 0
        logger.debug("Updated Discord presence: %s - %s", payload.get("details"), payload.get("state", ""))

    def clear_presence(self) -> None:
        rpc = self._rpc
        if rpc is None:
            return
        try:
            rpc.clear()
        except Exception as e:
            logger.warning("Failed to clear activity: %s", e)
            self.disconnect()
            raise TransportSendError(f"Presence clear failed: {e}") from e
        logger.debug("Cleared Discord presence")
