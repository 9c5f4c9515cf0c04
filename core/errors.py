# core/errors.py


class FetchError(Exception):
    """Plex could not be queried."""


class TransportError(FetchError):
    pass


class DecodeError(FetchError):
    pass


class ServerRejectedError(FetchError):
    def __init__(self, status_code: int):
        super().__init__(f"Plex API error: HTTP {status_code}")
        self.status_code = status_code


class PresenceError(Exception):
    """Discord presence could not be updated."""


class TooSoonError(PresenceError):
    pass


class BackoffError(PresenceError):
    pass


class NotConnectedError(PresenceError):
    pass


class TransportConnectError(PresenceError):
    pass


class TransportSendError(PresenceError):
    pass


class StartupError(Exception):
    """Fatal before the sync loop starts; the user has to fix the config."""


class ConfigInvalidError(StartupError):
    pass


class ServerUnreachableError(StartupError):
    pass
