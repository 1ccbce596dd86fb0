"""Exception types raised by the rotating writer and its collaborators."""


class RotalogError(Exception):
    """Base class for rotalog failures."""


class ConfigError(RotalogError, ValueError):
    """Raised when writer options are missing or out of range."""


class RotationError(RotalogError):
    """Raised when a rotation aborts before the live file was moved aside."""


class CompressionError(RotalogError):
    """Raised when a backup could not be compressed.

    The partially written output has already been removed when this is raised.
    """
