"""
Errors - Exception types raised by the build pipeline.
"""


class GalleryGenError(Exception):
    """Base exception for gallerygen errors."""
    pass


class ConfigError(GalleryGenError):
    """Invalid or missing configuration. Aborts the run."""
    pass


class UnsupportedFormatError(ConfigError):
    """An output format that the imaging library cannot encode."""

    def __init__(self, fmt: str):
        super().__init__(f"Image format not supported: {fmt}")
        self.format = fmt


class ManifestCorrupt(GalleryGenError):
    """The persisted manifest exists but cannot be parsed."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Manifest at {path} is corrupt: {reason}")
        self.path = path
        self.reason = reason


class FrontMatterError(GalleryGenError):
    """A front-matter header block could not be parsed."""
    pass


class OperationCancelled(GalleryGenError):
    """Raised at a cancellation checkpoint once cancellation was requested."""
    pass
