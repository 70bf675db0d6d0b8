"""
ProjectConfig - Project settings from gallerygen.yml and the environment.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import yaml

from .errors import ConfigError
from .sorting import ASCENDING, DIRECTIONS, ImageSortSettings

CONFIG_FILENAME = 'gallerygen.yml'
MANIFEST_FILENAME = 'manifest.json'

RESIZE_MODES = ('longest', 'width', 'height')
ON_CORRUPT_POLICIES = ('abort', 'reinitialize')

DEFAULT_FORMATS = {'webp': 85, 'jpg': 90}
DEFAULT_SIZES = [640, 1024, 1280, 1920, 2560]

SUPPORTED_FORMATS = ('webp', 'jpg', 'jpeg', 'png', 'avif')

ENV_PREFIX = 'GALLERYGEN_'


def _default_formats() -> Dict[str, int]:
    return dict(DEFAULT_FORMATS)


def _default_sizes() -> List[int]:
    return list(DEFAULT_SIZES)


@dataclass
class ImageConfig:
    """
    Image processing settings.

    Attributes:
        formats: Output format -> quality (1-100)
        sizes: Target sizes in pixels
        resize_mode: Which dimension a size refers to (longest, width, height)
        max_workers: Worker threads; None means processor count
        max_failures: Failed images tolerated before the run fails; None = unlimited
    """
    formats: Dict[str, int] = field(default_factory=_default_formats)
    sizes: List[int] = field(default_factory=_default_sizes)
    resize_mode: str = 'longest'
    max_workers: Optional[int] = None
    max_failures: Optional[int] = None

    @property
    def workers(self) -> int:
        return self.max_workers or os.cpu_count() or 1


@dataclass
class SortingConfig:
    galleries: str = ASCENDING
    images: ImageSortSettings = field(default_factory=ImageSortSettings)


@dataclass
class CameraConfig:
    """Friendly-name overrides for EXIF make/model codes."""
    makes: Dict[str, str] = field(default_factory=dict)
    models: Dict[str, str] = field(default_factory=dict)


@dataclass
class ProjectConfig:
    """
    Configuration for one gallery project.

    Loaded from an optional YAML file, then overridden by GALLERYGEN_*
    environment variables; the CLI applies its flags last.
    """
    project_dir: str = '.'
    source_dir: str = 'source'
    output_dir: str = 'output'
    cache_dir: str = '.cache'
    images: ImageConfig = field(default_factory=ImageConfig)
    sorting: SortingConfig = field(default_factory=SortingConfig)
    cameras: CameraConfig = field(default_factory=CameraConfig)
    on_corrupt_manifest: str = 'abort'
    log_level: Optional[str] = None

    @property
    def source_path(self) -> str:
        return os.path.join(self.project_dir, self.source_dir)

    @property
    def output_path(self) -> str:
        return os.path.join(self.project_dir, self.output_dir)

    @property
    def images_output_path(self) -> str:
        return os.path.join(self.output_path, 'images')

    @property
    def manifest_path(self) -> str:
        return os.path.join(self.project_dir, self.cache_dir, MANIFEST_FILENAME)

    @classmethod
    def load(cls, project_dir: str = '.', config_file: Optional[str] = None) -> 'ProjectConfig':
        """
        Load configuration for a project directory.

        Args:
            project_dir: Project root
            config_file: Explicit config path; defaults to <project>/gallerygen.yml
                         (optional when not given explicitly)

        Raises:
            ConfigError: If the file is unreadable or malformed
        """
        path = config_file or os.path.join(project_dir, CONFIG_FILENAME)
        data: dict = {}

        if config_file or os.path.exists(path):
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    data = yaml.safe_load(f) or {}
            except FileNotFoundError as e:
                raise ConfigError(f"Config file not found: {path}") from e
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path}: {e}") from e
            if not isinstance(data, dict):
                raise ConfigError(f"Config file {path} must contain a mapping")

        config = cls.from_dict(data, project_dir=project_dir)
        config.apply_env()
        return config

    @classmethod
    def from_dict(cls, data: dict, project_dir: str = '.') -> 'ProjectConfig':
        """Create from a parsed YAML mapping."""
        try:
            paths = data.get('paths') or {}
            images = data.get('images') or {}
            sorting = data.get('sorting') or {}
            image_sort = sorting.get('images') or {}
            cameras = data.get('cameras') or {}

            default_sort = ImageSortSettings()
            return cls(
                project_dir=project_dir,
                source_dir=paths.get('source', cls.source_dir),
                output_dir=paths.get('output', cls.output_dir),
                cache_dir=paths.get('cache', cls.cache_dir),
                images=ImageConfig(
                    formats={
                        str(k).lower(): int(v)
                        for k, v in (images.get('formats') or DEFAULT_FORMATS).items()
                    },
                    sizes=[int(s) for s in (images.get('sizes') or DEFAULT_SIZES)],
                    resize_mode=str(images.get('resize_mode', 'longest')).lower(),
                    max_workers=images.get('max_workers'),
                    max_failures=images.get('max_failures'),
                ),
                sorting=SortingConfig(
                    galleries=str(sorting.get('galleries', ASCENDING)).lower(),
                    images=ImageSortSettings(
                        field=image_sort.get('field', default_sort.field),
                        direction=str(image_sort.get('direction', default_sort.direction)).lower(),
                        fallback=image_sort.get('fallback', default_sort.fallback),
                    ),
                ),
                cameras=CameraConfig(
                    makes=dict(cameras.get('makes') or {}),
                    models=dict(cameras.get('models') or {}),
                ),
                on_corrupt_manifest=str(data.get('on_corrupt_manifest', 'abort')).lower(),
                log_level=data.get('log_level'),
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    def apply_env(self, environ: Optional[Dict[str, str]] = None) -> None:
        """Override settings from GALLERYGEN_* environment variables."""
        env = os.environ if environ is None else environ

        self.source_dir = env.get(f'{ENV_PREFIX}SOURCE_DIR', self.source_dir)
        self.output_dir = env.get(f'{ENV_PREFIX}OUTPUT_DIR', self.output_dir)
        self.cache_dir = env.get(f'{ENV_PREFIX}CACHE_DIR', self.cache_dir)
        self.log_level = env.get(f'{ENV_PREFIX}LOG_LEVEL', self.log_level)

        workers = env.get(f'{ENV_PREFIX}WORKERS')
        if workers:
            try:
                self.images.max_workers = int(workers)
            except ValueError as e:
                raise ConfigError(f"{ENV_PREFIX}WORKERS must be an integer, got {workers!r}") from e

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if not os.path.isdir(self.source_path):
            errors.append(f"Source directory not found: {self.source_path}")

        if not self.images.formats:
            errors.append("At least one output format is required")
        for fmt, quality in self.images.formats.items():
            if fmt not in SUPPORTED_FORMATS:
                errors.append(f"Unsupported output format: {fmt}")
            if not 1 <= quality <= 100:
                errors.append(f"Quality for {fmt} must be between 1 and 100, got {quality}")

        if not self.images.sizes:
            errors.append("At least one image size is required")
        for size in self.images.sizes:
            if size <= 0:
                errors.append(f"Image sizes must be positive, got {size}")

        if self.images.resize_mode not in RESIZE_MODES:
            errors.append(
                f"Unknown resize mode: {self.images.resize_mode} "
                f"(expected one of {', '.join(RESIZE_MODES)})"
            )
        if self.images.max_workers is not None and self.images.max_workers < 1:
            errors.append("max_workers must be at least 1")
        if self.images.max_failures is not None and self.images.max_failures < 0:
            errors.append("max_failures must not be negative")

        if self.sorting.galleries not in DIRECTIONS:
            errors.append(f"Unknown gallery sort direction: {self.sorting.galleries}")
        if self.sorting.images.direction not in DIRECTIONS:
            errors.append(f"Unknown image sort direction: {self.sorting.images.direction}")

        if self.on_corrupt_manifest not in ON_CORRUPT_POLICIES:
            errors.append(f"Unknown on_corrupt_manifest policy: {self.on_corrupt_manifest}")

        return errors
