"""
Error types raised by the tilemark core.
"""


class WatermarkError(Exception):
    """Base class for every error raised by tilemark."""


class SettingsError(WatermarkError, ValueError):
    """Watermark settings are missing or out of range."""


class DecodeError(WatermarkError):
    """Source bytes are not a readable raster image."""

    def __init__(self, message: str, filename: str = ""):
        super().__init__(message)
        self.filename = filename


class CompositeError(WatermarkError):
    """Overlay and base image sizes do not match."""


class FolderAccessError(WatermarkError):
    """The input folder cannot be listed."""


class BatchBusyError(WatermarkError):
    """A batch is already running."""
