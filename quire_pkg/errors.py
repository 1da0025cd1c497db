"""Exception types raised by Quire."""


class QuireError(Exception):
    """Base class for all Quire errors."""


class BuildError(QuireError):
    """A fatal build failure. The build stops at the first one raised."""


class PostParseError(QuireError):
    """A single post file could not be turned into a Post."""

    def __init__(self, path, reason):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class ConfigError(QuireError, ValueError):
    """The site configuration is missing or invalid."""
