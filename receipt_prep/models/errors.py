class ReceiptPrepError(Exception):
    """Base class for every fatal preprocessing failure."""


class InvalidInputError(ReceiptPrepError, ValueError):
    """The input image is unreadable or has zero width/height."""


class NoContentDetectedError(ReceiptPrepError):
    """No pixel matched the detection predicate, so there is no receipt to crop."""


class ConfigurationError(ReceiptPrepError, ValueError):
    """A processing option is outside its accepted range."""
