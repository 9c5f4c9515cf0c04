# core/plex.py
import logging
from typing import Optional

import requests

from .config import Config, config_path
from .errors import (
    DecodeError,
    FetchError,
    ServerRejectedError,
    ServerUnreachableError,
    TransportError,
)
from .models import MediaKind, PlaybackRecord, PlayState

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10

_MEDIA_KINDS = {
    "movie": MediaKind.MOVIE,
    "episode": MediaKind.EPISODE,
    "track": MediaKind.TRACK,
}

_PLAY_STATES = {
    "playing": PlayState.PLAYING,
    "paused": PlayState.PAUSED,
    "buffering": PlayState.BUFFERING,
}


def _field(item: dict, key: str, kind: type):
    """Return ``item[key]`` if it has the expected JSON type, None when absent."""
    value = item.get(key)
    if value is None:
        return None
    # bool is an int subclass but never a valid count or timestamp
    if not isinstance(value, kind) or isinstance(value, bool):
        raise DecodeError(f"Plex field {key!r} has unexpected type {type(value).__name__}")
    return value


def _artwork_path(item: dict, kind: MediaKind) -> Optional[str]:
    if kind is MediaKind.EPISODE:
        keys = ("grandparentArt", "art", "thumb")
    elif kind is MediaKind.TRACK:
        keys = ("parentThumb", "grandparentThumb")
    else:
        keys = ("art", "thumb")
    for key in keys:
        value = _field(item, key, str)
        if value:
            return value
    return None


def parse_session(item: dict) -> PlaybackRecord:
    """
    Map one Plex ``Metadata`` entry onto a PlaybackRecord. Fields of the
    wrong JSON type raise DecodeError.
    """
    kind = _MEDIA_KINDS.get(_field(item, "type", str), MediaKind.UNKNOWN)

    player = _field(item, "Player", dict) or {}
    # Unrecognised or missing player states count as playing.
    state = _PLAY_STATES.get(_field(player, "state", str), PlayState.PLAYING)

    title = _field(item, "title", str)

    return PlaybackRecord(
        title=title if title is not None else "Unknown",
        media_kind=kind,
        play_state=state,
        year=_field(item, "year", int),
        series_or_artist=_field(item, "grandparentTitle", str),
        album_or_season_label=_field(item, "parentTitle", str),
        season_number=_field(item, "parentIndex", int),
        episode_number=_field(item, "index", int),
        artwork_reference=_artwork_path(item, kind),
        duration_ms=_field(item, "duration", int),
        elapsed_ms=_field(item, "viewOffset", int),
    )


class PlexClient:
    def __init__(self, server_url: str, token: str, session: Optional[requests.Session] = None,
                 timeout: float = REQUEST_TIMEOUT):
        self.server_url = server_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._session = session or requests.Session()

    def _get(self, path: str):
        url = f"{self.server_url}{path}"
        headers = {
            "X-Plex-Token": self.token,
            "Accept": "application/json",
        }
        try:
            resp = self._session.get(url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"Plex request failed: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise ServerRejectedError(resp.status_code)
        return resp

    def fetch(self) -> Optional[PlaybackRecord]:
        """
        Return the first active session, or None when nothing is playing.
        Servers with several sessions are not disambiguated.
        """
        resp = self._get("/status/sessions")
        try:
            data = resp.json()
        except ValueError as e:
            raise DecodeError(f"Invalid JSON from Plex: {e}") from e

        container = data.get("MediaContainer") if isinstance(data, dict) else None
        if not isinstance(container, dict):
            raise DecodeError("Plex response has no MediaContainer")

        sessions = container.get("Metadata") or []
        if not isinstance(sessions, list):
            raise DecodeError("Plex response has malformed Metadata")
        if not sessions:
            return None
        if not isinstance(sessions[0], dict):
            raise DecodeError("Plex response has malformed Metadata")

        record = parse_session(sessions[0])
        logger.debug("Plex session: %s (%s)", record.display_title(), record.state_text())
        return record

    def test_connection(self) -> None:
        self._get("/")


def connect_to_plex(config: Config, session: Optional[requests.Session] = None) -> PlexClient:
    client = PlexClient(config.server_url, config.token, session=session)
    try:
        client.test_connection()
    except FetchError as e:
        raise ServerUnreachableError(
            f"Failed to connect to Plex server: {e}\n\n"
            f"Check the server URL and token in {config_path()}"
        ) from e

    logger.info("Connected to Plex server at %s", client.server_url)
    return client
