"""Exceptions raised by the seqlab core."""


class SeqlabError(Exception):
    """Base class for seqlab errors."""


class EncoderStateError(SeqlabError, RuntimeError):
    """Raised when an encoder is used out of order (a caller bug, not a data error)."""
