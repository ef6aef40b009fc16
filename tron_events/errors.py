"""Exceptions raised by the Tron events cache."""


class EventCacheError(Exception):
    """Base class for errors raised by tron_events."""
    pass


class BackingStoreUnavailable(EventCacheError):
    """The Redis backing store could not be reached."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Redis at {url} is unavailable: {reason}")


class DecodeError(EventCacheError, ValueError):
    """Stored event data could not be parsed."""
    pass
