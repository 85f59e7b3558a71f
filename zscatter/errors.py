"""
Error kinds raised by the generator, codec and stream session.

None of these are retried; each ends the operation it occurs in.
"""


class ZScatterError(Exception):
    """Base class for zscatter errors."""


class ConfigurationError(ZScatterError, ValueError):
    """Invalid command line or run configuration."""


class RecordFormatError(ZScatterError, ValueError):
    """Byte data that does not split into whole 24-byte records."""


class IOOpenError(ZScatterError, OSError):
    """A source or destination file could not be opened."""


class IOWriteError(ZScatterError, OSError):
    """A destination write failed part way through an operation."""


class IOReadError(ZScatterError, OSError):
    """A source read failed part way through a stream."""
