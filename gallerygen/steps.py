"""
Steps - The scan and image pipeline steps, plus their shared build context.
"""

import logging
import os
from typing import Optional

from .cancellation import CancellationToken
from .config import ProjectConfig
from .errors import ManifestCorrupt, OperationCancelled, UnsupportedFormatError
from .exif import CameraNameMapper, ExifReader
from .generation_progress import GenerationProgress
from .generator import ImageGenerator
from .image_options import ImageProcessingOptions
from .manifest import Manifest
from .pipeline import PipelineOrder, PipelineProgress, PipelineStep, StepResult
from .scan_stats import ScanResult
from .scanner import Scanner
from .scanner_progress import ScannerProgress
from .sorting import sort_content
from .variant_generator import VariantGenerator


class BuildContext:
    """
    State shared by the steps of one run: configuration, the manifest and
    run options.
    """

    def __init__(
        self,
        config: ProjectConfig,
        force: bool = False,
        reinitialize: bool = False,
        show_files: bool = False,
        quiet: bool = False,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize build context.

        Args:
            config: Project configuration
            force: Reprocess every image
            reinitialize: Replace a corrupt manifest instead of failing
            show_files: Print every file as it is handled
            quiet: Suppress progress output
            logger: Optional logger instance
        """
        self.config = config
        self.force = force
        self.reinitialize = reinitialize or config.on_corrupt_manifest == 'reinitialize'
        self.show_files = show_files
        self.quiet = quiet
        self.logger = logger or logging.getLogger(__name__)
        self.scan_result: Optional[ScanResult] = None
        self._manifest: Optional[Manifest] = None
        self._variant_generator: Optional[VariantGenerator] = None

    @property
    def manifest(self) -> Manifest:
        """
        The manifest, loaded on first use.

        Raises:
            ManifestCorrupt: If the manifest is corrupt and reinitializing
                is not allowed
        """
        if self._manifest is None:
            self._manifest = self._load_manifest()
        return self._manifest

    def _load_manifest(self) -> Manifest:
        path = self.config.manifest_path
        try:
            return Manifest.load_or_create(path)
        except ManifestCorrupt as e:
            if not self.reinitialize:
                raise
            self.logger.warning(f"{e}; starting with an empty manifest")
            return Manifest.create_new()

    def save_manifest(self) -> None:
        self.manifest.save(self.config.manifest_path)

    @property
    def variant_generator(self) -> VariantGenerator:
        if self._variant_generator is None:
            mapper = CameraNameMapper(
                makes=self.config.cameras.makes,
                models=self.config.cameras.models,
            )
            self._variant_generator = VariantGenerator(
                exif_reader=ExifReader(mapper, logger=self.logger),
                logger=self.logger,
            )
        return self._variant_generator

    @property
    def image_options(self) -> ImageProcessingOptions:
        return ImageProcessingOptions.from_config(
            self.config.images, self.config.images_output_path
        )


class ScanStep(PipelineStep):
    """Rebuilds the manifest tree from the source directory."""

    name = 'scan'
    description = 'Scan source directory'
    order = PipelineOrder.SCAN

    def __init__(self, context: BuildContext):
        self.context = context

    def execute(self, progress: PipelineProgress, cancel_token: CancellationToken) -> StepResult:
        ctx = self.context
        try:
            manifest = ctx.manifest
        except ManifestCorrupt as e:
            return StepResult.fail(f"{e} (rerun with --reinitialize to rebuild it)")

        scanner = Scanner(
            gallery_direction=ctx.config.sorting.galleries,
            image_sort=ctx.config.sorting.images,
            logger=ctx.logger,
        )
        scan_progress = None
        if not ctx.quiet:
            scan_progress = ScannerProgress(show_files=ctx.show_files, logger=ctx.logger)

        result = scanner.scan(manifest, ctx.config.source_path, scan_progress)
        ctx.scan_result = result

        self._delete_orphan_variants(manifest, result.delta.removed)
        ctx.save_manifest()

        delta = result.delta
        return StepResult.ok(
            items_processed=result.stats.images,
            message=(
                f"{len(delta.new)} new, {len(delta.changed)} changed, "
                f"{len(delta.removed)} removed"
            ),
        )

    def _delete_orphan_variants(self, manifest: Manifest, removed) -> None:
        """Delete variants of removed images unless a live image shares the stem."""
        if not removed:
            return
        live_stems = {image.stem for image in manifest.iter_images()}
        output_directory = self.context.config.images_output_path
        for source_path in removed:
            stem = os.path.splitext(os.path.basename(source_path))[0]
            if stem in live_stems:
                self.context.logger.debug(f"Keeping variants of {stem}: still in use")
                continue
            self.context.variant_generator.delete_variants(output_directory, stem)


class ImagesStep(PipelineStep):
    """Generates variants for new, changed and outdated images."""

    name = 'images'
    description = 'Generate image variants'
    order = PipelineOrder.IMAGES

    def __init__(self, context: BuildContext):
        self.context = context

    def execute(self, progress: PipelineProgress, cancel_token: CancellationToken) -> StepResult:
        ctx = self.context
        try:
            manifest = ctx.manifest
        except ManifestCorrupt as e:
            return StepResult.fail(f"{e} (rerun with --reinitialize to rebuild it)")

        if manifest.total_images == 0:
            return StepResult.skip("No images in manifest (run scan first?)")

        generator = ImageGenerator(
            variant_generator=ctx.variant_generator,
            options=ctx.image_options,
            source_root=ctx.config.source_path,
            max_workers=ctx.config.images.workers,
            max_failures=ctx.config.images.max_failures,
            force=ctx.force,
            logger=ctx.logger,
        )
        gen_progress = None
        if not ctx.quiet:
            gen_progress = GenerationProgress(show_files=ctx.show_files, logger=ctx.logger)

        try:
            stats = generator.run(manifest, gen_progress, cancel_token)
        except UnsupportedFormatError as e:
            return StepResult.fail(str(e))

        if stats.processed:
            self._sort_gallery_content(manifest)
        ctx.save_manifest()

        if stats.cancelled:
            raise OperationCancelled(f"Image generation cancelled after {stats.processed} images")
        if stats.aborted:
            return StepResult.fail(f"{stats.errors} images failed")
        if stats.total_to_process == 0:
            return StepResult.skip("All images up to date")

        message = f"{stats.variants_generated} variants"
        if stats.errors:
            message += f", {stats.errors} errors"
        return StepResult.ok(items_processed=stats.processed, message=message)

    def _sort_gallery_content(self, manifest: Manifest) -> None:
        """Re-sort content now that dates and EXIF are known."""
        settings = self.context.config.sorting.images
        for entry in manifest.iter_entries():
            if entry.content:
                entry.content = sort_content(entry.content, settings.with_override(entry.sort))
