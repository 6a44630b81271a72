"""Error types raised by the lens screening pipeline."""

__all__ = ['LensScreenerError', 'InputError', 'DecodeError', 'ProcessingError']


class LensScreenerError(Exception):
    """Base class for all lens screening failures."""

    code = "PROCESSING_ERROR"


class InputError(LensScreenerError, ValueError):
    """Missing or invalid caller input (e.g. an empty image path)."""

    code = "ARGUMENT_ERROR"


class DecodeError(LensScreenerError, ValueError):
    """Image file is absent, corrupt, zero-sized or in an unsupported format."""

    code = "DECODE_ERROR"


class ProcessingError(LensScreenerError, RuntimeError):
    """Unexpected failure inside the numeric stages."""

    code = "PROCESSING_ERROR"
