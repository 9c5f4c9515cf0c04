# core/config.py
import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional

from platformdirs import user_config_dir

from .errors import ConfigInvalidError

logger = logging.getLogger(__name__)

APP_DIR_NAME = "plex-rich-presence"
TOKEN_PLACEHOLDER = "YOUR_PLEX_TOKEN_HERE"


@dataclass
class Config:
    server_url: str = "http://localhost:32400"
    token: str = TOKEN_PLACEHOLDER
    polling_interval_secs: int = 15

    # Verbose logging plus a log file, same as PRP_DEBUG=1.
    debug: bool = False


def config_path() -> Path:
    return Path(user_config_dir(APP_DIR_NAME)) / "config.json"


def save_config(config: Config, path: Optional[Path] = None) -> None:
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(config), indent=2) + "\n", encoding="utf-8")


def validate(config: Config) -> Config:
    url = config.server_url
    if not isinstance(url, str) or not url.startswith(("http://", "https://")):
        raise ConfigInvalidError(f"server_url must start with http:// or https:// (got {url!r})")

    token = config.token
    if not isinstance(token, str) or not token.strip() or token == TOKEN_PLACEHOLDER:
        raise ConfigInvalidError("token is not set. Add your Plex token to the config file.")

    interval = config.polling_interval_secs
    if isinstance(interval, bool) or not isinstance(interval, int) or interval < 1:
        raise ConfigInvalidError(
            f"polling_interval_secs must be a positive whole number (got {interval!r})"
        )

    if not isinstance(config.debug, bool):
        raise ConfigInvalidError(f"debug must be true or false (got {config.debug!r})")
    return config


def load_config(path: Optional[Path] = None) -> Config:
    """
    Read and validate the config file. A missing file is created with
    defaults and reported as invalid so the user gets a chance to edit it.
    """
    path = path or config_path()

    if not path.exists():
        try:
            save_config(Config(), path)
        except OSError as e:
            raise ConfigInvalidError(f"Could not create config file at {path}: {e}") from e
        logger.info("Wrote default config to %s", path)
        raise ConfigInvalidError(
            f"Config file created at {path}. "
            "Please edit it with your Plex server URL and token."
        )

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigInvalidError(f"Could not read {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigInvalidError(f"{path} must contain a JSON object")

    known = {f.name for f in fields(Config)}
    config = Config(**{k: v for k, v in raw.items() if k in known})
    return validate(config)
