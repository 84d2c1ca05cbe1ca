"""
Exception types raised by the overlay engine and the export compositor.
"""


class InklayerError(Exception):
    """Base class for all editor errors."""


class ValidationError(InklayerError):
    """An element was rejected before being accepted into the store."""


class NotFoundError(InklayerError):
    """An element id or form field name does not exist."""


class ResourceUnavailableError(InklayerError):
    """A drawing surface or an image could not be obtained."""


class SerializationError(InklayerError):
    """The base document could not be parsed or the output could not be written."""


class ExportCancelledError(InklayerError):
    """An export was cancelled between two pipeline stages."""
