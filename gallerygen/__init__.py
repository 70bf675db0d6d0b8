"""
Incremental static gallery builder.

Two steps share one persistent manifest:
    1. Scan: walk the source tree into the manifest, flagging new, changed
       and removed images
    2. Images: generate resized variants for every image that needs work

Only work invalidated since the last run is redone.
"""

__version__ = "1.0.0"

from .errors import (
    GalleryGenError,
    ConfigError,
    UnsupportedFormatError,
    ManifestCorrupt,
    FrontMatterError,
    OperationCancelled,
)
from .file_hasher import compute_hash, compute_config_hash
from .slugs import to_slug, build_path, sort_natural
from .exif import ExifData, ExifReader, CameraNameMapper
from .content import ImageContent, MarkdownContent
from .manifest_entry import ManifestEntry
from .manifest import Manifest
from .config import ProjectConfig
from .scanner import Scanner
from .scanner_progress import ScannerProgress
from .image_options import ImageProcessingOptions
from .variant_generator import VariantGenerator
from .generation_stats import GenerationStats
from .generation_progress import GenerationProgress
from .generator import ImageGenerator
from .cancellation import CancellationToken
from .pipeline import Pipeline, PipelineOrder, PipelineStep, StepResult
from .steps import BuildContext, ScanStep, ImagesStep
from .navigation import build_navigation
from .reporter import Reporter

__all__ = [
    "GalleryGenError",
    "ConfigError",
    "UnsupportedFormatError",
    "ManifestCorrupt",
    "FrontMatterError",
    "OperationCancelled",
    "compute_hash",
    "compute_config_hash",
    "to_slug",
    "build_path",
    "sort_natural",
    "ExifData",
    "ExifReader",
    "CameraNameMapper",
    "ImageContent",
    "MarkdownContent",
    "ManifestEntry",
    "Manifest",
    "ProjectConfig",
    "Scanner",
    "ScannerProgress",
    "ImageProcessingOptions",
    "VariantGenerator",
    "GenerationStats",
    "GenerationProgress",
    "ImageGenerator",
    "CancellationToken",
    "Pipeline",
    "PipelineOrder",
    "PipelineStep",
    "StepResult",
    "BuildContext",
    "ScanStep",
    "ImagesStep",
    "build_navigation",
    "Reporter",
]
