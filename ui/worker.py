# ui/worker.py
import threading

from PySide6.QtCore import QThread, Signal

from core.discord_rpc import PresenceChannel
from core.plex import PlexClient
from core.sync import POLL_SECONDS, SyncLoop


class PresenceWorker(QThread):
    # str for the current session, None when nothing is playing
    status = Signal(object)

    def __init__(self, plex: PlexClient, poll_seconds: int = POLL_SECONDS, parent=None):
        super().__init__(parent)
        self.plex = plex
        self.poll_seconds = poll_seconds
        self._stop_event = threading.Event()

    def stop(self):
        self._stop_event.set()

    def run(self):
        # The Discord connection is created and used on this thread only.
        loop = SyncLoop(
            self.plex,
            PresenceChannel(),
            status_sink=self.status.emit,
            poll_seconds=self.poll_seconds,
            stop_event=self._stop_event,
        )
        loop.run()
