"""Error types raised by the poller."""
from __future__ import annotations


class ImmoTraktError(Exception):
    """Base class for all immo-trakt errors."""


class ConfigError(ImmoTraktError):
    """Configuration is missing or invalid. Fatal at startup."""


class TransportError(ImmoTraktError):
    """A network call to the search API failed."""


class DecodeError(ImmoTraktError):
    """The search API answered with an unexpected payload."""


class SinkError(ImmoTraktError):
    """A notification could not be delivered."""
