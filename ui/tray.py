# ui/tray.py
import logging
from typing import Optional

from PySide6.QtCore import QObject, Qt, QUrl
from PySide6.QtGui import QAction, QColor, QDesktopServices, QIcon, QPainter, QPixmap
from PySide6.QtWidgets import QApplication, QMenu, QSystemTrayIcon

from core.config import config_path

from .worker import PresenceWorker

logger = logging.getLogger(__name__)

PLEX_ORANGE = "#e5a00d"
IDLE_TEXT = "Nothing playing"


def make_icon(size: int = 32) -> QIcon:
    pixmap = QPixmap(size, size)
    pixmap.fill(Qt.transparent)

    p = QPainter(pixmap)
    p.setRenderHint(QPainter.Antialiasing)
    p.setPen(Qt.NoPen)
    p.setBrush(QColor(PLEX_ORANGE))
    p.drawEllipse(2, 2, size - 4, size - 4)
    p.end()
    return QIcon(pixmap)


class TrayController(QObject):
    """Tray icon with a status line, Open Config and Quit."""

    def __init__(self, worker: PresenceWorker, parent=None):
        super().__init__(parent)
        self.worker = worker

        tray = QSystemTrayIcon(self)
        tray.setToolTip("Plex Rich Presence")
        tray.setIcon(make_icon())

        menu = QMenu()
        self.status_action = QAction(IDLE_TEXT, menu)
        self.status_action.setEnabled(False)
        action_config = QAction("Open Config", menu)
        action_quit = QAction("Quit", menu)

        menu.addAction(self.status_action)
        menu.addSeparator()
        menu.addAction(action_config)
        menu.addAction(action_quit)

        action_config.triggered.connect(self._open_config)
        action_quit.triggered.connect(self._quit)

        tray.setContextMenu(menu)
        tray.show()

        self._menu = menu
        self._tray = tray

        # Queued across threads; delivered on the UI event loop.
        worker.status.connect(self.set_status)

    def set_status(self, text: Optional[str]):
        self.status_action.setText(text or IDLE_TEXT)
        tip = f"Plex Rich Presence - {text}" if text else "Plex Rich Presence"
        self._tray.setToolTip(tip[:120])

    def _open_config(self):
        path = config_path()
        if not QDesktopServices.openUrl(QUrl.fromLocalFile(str(path))):
            logger.error("Failed to open config file %s", path)

    def stop_worker(self):
        if not self.worker:
            return
        logger.info("Stopping sync worker")
        self.worker.stop()
        if self.worker.isRunning() and not self.worker.wait(15000):
            # Dropping a running QThread aborts the process; keep it alive.
            logger.warning("Sync worker did not stop within 15s")
            return
        self.worker = None

    def _quit(self):
        logger.info("Quit requested")
        self.stop_worker()
        self._tray.hide()
        QApplication.instance().quit()
