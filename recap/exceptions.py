"""
Errors raised by the recap package.

Library functions raise these; only the command-line interface turns them
into exit codes.
"""


class RecapError(Exception):
    """Base class for all recap failures."""


class ConfigurationError(RecapError):
    """An option value is invalid or inconsistent with the inputs."""


class ResourceError(RecapError):
    """A required directory or file does not exist."""


class DataError(RecapError):
    """The input tables cannot produce a meaningful recalibration."""
