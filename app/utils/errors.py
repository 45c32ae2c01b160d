"""
Error hierarchy for the PNG relay.

Configuration and authentication errors are fatal at startup. Everything
else is scoped to a single file event and only ever ends up in the log.
"""


class RelayError(Exception):
    """Base exception for relay failures."""

    pass


class ConfigurationError(RelayError):
    """A required setting is missing, empty or malformed."""

    def __init__(self, message: str, missing: list[str] | None = None):
        self.missing = missing or []
        super().__init__(message)

    @classmethod
    def for_missing(cls, missing: list[str]) -> "ConfigurationError":
        plural = "s" if len(missing) > 1 else ""
        return cls(
            f"Missing required environment variable{plural}: {', '.join(missing)}",
            missing=missing,
        )


class AuthenticationError(RelayError):
    """Discord rejected the bot token."""

    pass


class ChannelUnavailableError(RelayError):
    """Destination channel could not be resolved as a text channel."""

    pass
