import logging
import sys

from PySide6.QtWidgets import QApplication, QMessageBox

from core.config import load_config
from core.debug import setup_logging
from core.errors import ConfigInvalidError, StartupError
from core.plex import connect_to_plex
from ui.tray import TrayController, make_icon
from ui.worker import PresenceWorker

logger = logging.getLogger(__name__)


def main():
    setup_logging()
    app = QApplication(sys.argv)
    app.setWindowIcon(make_icon())
    app.setQuitOnLastWindowClosed(False)

    try:
        config = load_config()
        setup_logging(config.debug)
        plex = connect_to_plex(config)
    except StartupError as e:
        logger.error("%s", e)
        title = "Configuration Error" if isinstance(e, ConfigInvalidError) else "Connection Error"
        QMessageBox.critical(None, f"Plex Rich Presence - {title}", str(e))
        return 1

    worker = PresenceWorker(plex, poll_seconds=config.polling_interval_secs)
    tray = TrayController(worker)
    app.aboutToQuit.connect(tray.stop_worker)
    worker.start()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
