#main.py
import logging
import sys

from core.config import load_config
from core.debug import setup_logging
from core.discord_rpc import PresenceChannel
from core.errors import StartupError
from core.plex import connect_to_plex
from core.sync import SyncLoop

logger = logging.getLogger("plex-rich-presence")


def print_status(text):
    logger.info("[Status] %s", text or "Nothing playing")


def main():
    setup_logging()
    try:
        config = load_config()
        setup_logging(config.debug)
        plex = connect_to_plex(config)
    except StartupError as e:
        logger.error("%s", e)
        return 1

    loop = SyncLoop(
        plex,
        PresenceChannel(),
        status_sink=print_status,
        poll_seconds=config.polling_interval_secs,
    )

    logger.info("Watching Plex… (Ctrl+C to stop)")
    try:
        loop.run()
    except KeyboardInterrupt:
        loop.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
