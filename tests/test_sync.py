import threading

import pytest

from core.errors import BackoffError, TransportError, TransportSendError
from core.models import MediaKind, PlaybackRecord, PlayState
from core.plex import PlexClient
from core.sync import SyncLoop, identity_key


class _ScriptedFetcher:
    """Returns (or raises) the queued results in order, then keeps the last one."""

    def __init__(self, *results) -> None:
        self.results = list(results)
        self.calls = 0

    def fetch(self):
        self.calls += 1
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


class _FakeResponse:
    def __init__(self, payload) -> None:
        self.status_code = 200
        self._payload = payload

    def json(self):
        return self._payload


class _FakeSession:
    def __init__(self, response) -> None:
        self.response = response
        self.calls = 0

    def get(self, url, headers=None, timeout=None):
        self.calls += 1
        return self.response


class _FakeChannel:
    def __init__(self) -> None:
        self.updates: list = []
        self.clears = 0
        self.disconnects = 0
        self.update_error = None
        self.clear_error = None

    def update_presence(self, np) -> None:
        self.updates.append(np)
        if self.update_error is not None:
            raise self.update_error

    def clear_presence(self) -> None:
        self.clears += 1
        if self.clear_error is not None:
            raise self.clear_error

    def disconnect(self) -> None:
        self.disconnects += 1


def _movie(state=PlayState.PLAYING, elapsed=60_000) -> PlaybackRecord:
    return PlaybackRecord(
        title="Dune",
        media_kind=MediaKind.MOVIE,
        play_state=state,
        year=2021,
        duration_ms=9_300_000,
        elapsed_ms=elapsed,
    )


def _loop(fetcher, channel):
    statuses: list = []
    return SyncLoop(fetcher, channel, status_sink=statuses.append, poll_seconds=0), statuses


def test_playing_record_updates_presence_and_status():
    channel = _FakeChannel()
    loop, statuses = _loop(_ScriptedFetcher(_movie()), channel)

    loop.run_once()

    assert statuses == ["Dune (2021) [1:00 / 2:35:00]"]
    assert len(channel.updates) == 1
    assert channel.clears == 0


def test_unchanged_record_does_not_repeat_status():
    channel = _FakeChannel()
    loop, statuses = _loop(_ScriptedFetcher(_movie()), channel)

    loop.run_once()
    loop.run_once()

    assert len(statuses) == 1
    assert len(channel.updates) == 2


def test_progress_change_emits_new_status():
    loop, statuses = _loop(_ScriptedFetcher(_movie(elapsed=1000), _movie(elapsed=16_000)), _FakeChannel())

    loop.run_once()
    loop.run_once()

    assert statuses == ["Dune (2021) [0:01 / 2:35:00]", "Dune (2021) [0:16 / 2:35:00]"]


def test_paused_record_clears_presence():
    channel = _FakeChannel()
    loop, statuses = _loop(_ScriptedFetcher(_movie(state=PlayState.PAUSED)), channel)

    loop.run_once()

    assert channel.updates == []
    assert channel.clears == 1
    assert statuses == ["Dune (2021) [1:00 / 2:35:00]"]


def test_nothing_playing_clears_once():
    channel = _FakeChannel()
    loop, statuses = _loop(_ScriptedFetcher(_movie(), None), channel)

    for _ in range(4):
        loop.run_once()

    assert statuses == ["Dune (2021) [1:00 / 2:35:00]", None]
    assert channel.clears == 1


def test_idle_from_start_emits_nothing():
    channel = _FakeChannel()
    loop, statuses = _loop(_ScriptedFetcher(None), channel)

    loop.run_once()
    loop.run_once()

    assert statuses == []
    assert channel.clears == 0


def test_fetch_errors_are_absorbed():
    channel = _FakeChannel()
    loop, statuses = _loop(_ScriptedFetcher(TransportError("down"), _movie()), channel)

    loop.run_once()
    assert statuses == []

    loop.run_once()
    assert len(channel.updates) == 1


def test_malformed_session_is_absorbed():
    session = _FakeSession(_FakeResponse({"MediaContainer": {"Metadata": [{"title": "X", "Player": "paused"}]}}))
    channel = _FakeChannel()
    loop, statuses = _loop(PlexClient("http://plex.local", "secret", session=session), channel)

    loop.run_once()
    loop.run_once()

    assert session.calls == 2
    assert statuses == []
    assert channel.updates == []


@pytest.mark.parametrize("error", [BackoffError("wait"), TransportSendError("pipe closed")])
def test_presence_errors_are_absorbed(error):
    channel = _FakeChannel()
    channel.update_error = error
    loop, statuses = _loop(_ScriptedFetcher(_movie()), channel)

    loop.run_once()
    loop.run_once()

    assert len(channel.updates) == 2
    assert len(statuses) == 1


def test_clear_errors_are_absorbed():
    channel = _FakeChannel()
    channel.clear_error = TransportSendError("pipe closed")
    loop, _ = _loop(_ScriptedFetcher(_movie(), None), channel)

    loop.run_once()
    loop.run_once()

    assert channel.clears == 1


def test_identity_key():
    assert identity_key(_movie()) == "Dune-playing-1:00 / 2:35:00"
    np = PlaybackRecord(title="X", media_kind=MediaKind.UNKNOWN, play_state=PlayState.PAUSED)
    assert identity_key(np) == "X-paused-"


def test_run_stops_and_disconnects():
    channel = _FakeChannel()
    stop = threading.Event()
    fetcher = _ScriptedFetcher(_movie())
    loop = SyncLoop(fetcher, channel, poll_seconds=60, stop_event=stop)

    thread = threading.Thread(target=loop.run)
    thread.start()
    # The 60s wait must be cut short.
    stop.set()
    thread.join(timeout=5)

    assert not thread.is_alive()
    assert channel.disconnects == 1
    assert loop.stopped
    assert fetcher.calls <= 1


def test_run_disconnects_when_cycle_raises():
    channel = _FakeChannel()
    loop, _ = _loop(_ScriptedFetcher(RuntimeError("boom")), channel)

    with pytest.raises(RuntimeError):
        loop.run()
    assert channel.disconnects == 1
