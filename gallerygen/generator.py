"""
ImageGenerator - Generates variants for every image that needs work.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from .cancellation import CancellationToken
from .content import ImageContent
from .errors import OperationCancelled, UnsupportedFormatError
from .file_hasher import compute_config_hash, compute_hash
from .generation_progress import GenerationProgress
from .generation_stats import GenerationStats
from .image_options import ImageProcessingOptions, Variant
from .manifest import Manifest
from .variant_generator import (
    VariantGenerator, VariantResult, candidate_sizes, existing_variants,
)

REASON_NEW = 'new'
REASON_CHANGED = 'changed'
REASON_CONFIG = 'config'
REASON_MISSING = 'missing variants'
REASON_FORCE = 'force'


@dataclass
class ImageWorkItem:
    """
    One image scheduled for processing.

    Attributes:
        source_path: Manifest key
        source_file: Absolute path of the source image
        reason: Why the image needs work
        variants: Only these pairs; None means all
    """
    source_path: str
    source_file: str
    reason: str
    variants: Optional[List[Variant]] = None


class ImageGenerator:
    """
    Brings the variants of every manifest image up to date.

    An image needs work when it was never processed, when its fingerprint
    changed, when the image settings changed, or when a recorded variant
    file is missing or empty. Settings changes that only add sizes or
    formats are served by generating the missing pairs.

    Images are processed in a thread pool, one image per worker. Workers
    only compute; the calling thread applies every manifest write.
    """

    def __init__(
        self,
        variant_generator: VariantGenerator,
        options: ImageProcessingOptions,
        source_root: str,
        max_workers: Optional[int] = None,
        max_failures: Optional[int] = None,
        force: bool = False,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize generator.

        Args:
            variant_generator: Per-image variant generator
            options: Image settings for this run
            source_root: Directory source paths are relative to
            max_workers: Worker threads (default: processor count)
            max_failures: Failed images tolerated before stopping; None = unlimited
            force: Reprocess every image
            logger: Optional logger instance
        """
        self.variant_gen = variant_generator
        self.options = options
        self.source_root = source_root
        self.max_workers = max_workers or os.cpu_count() or 1
        self.max_failures = max_failures
        self.force = force
        self.logger = logger or logging.getLogger(__name__)
        self.stats = GenerationStats()
        self._stop_requested = False

    @property
    def config_hash(self) -> str:
        return compute_config_hash(
            self.options.sizes, self.options.formats, self.options.resize_mode
        )

    def stop(self) -> None:
        """Request the generator to stop; images already running finish."""
        self._stop_requested = True

    def config_changed(self, manifest: Manifest) -> bool:
        return manifest.config_hash is not None and manifest.config_hash != self.config_hash

    def is_additive_change(self, manifest: Manifest) -> bool:
        """
        True if existing variants remain valid under the new settings.

        That holds when the resize mode is unchanged and every format kept
        from the previous run keeps its quality.
        """
        if (manifest.resize_mode or 'longest') != self.options.resize_mode:
            return False
        if not manifest.format_qualities:
            return False
        for fmt, quality in self.options.formats.items():
            previous = manifest.format_qualities.get(fmt.lower())
            if previous is not None and previous != quality:
                return False
        return True

    def plan(self, manifest: Manifest) -> List[ImageWorkItem]:
        """
        Decide which images need work.

        Args:
            manifest: Manifest after scanning

        Returns:
            Work items in manifest order
        """
        config_changed = self.config_changed(manifest)
        full_rebuild = config_changed and not self.is_additive_change(manifest)
        if config_changed:
            mode = "re-encoding all images" if full_rebuild else "generating missing variants"
            self.logger.info(f"Image settings changed: {mode}")

        items = []
        for image in manifest.iter_images():
            item = self._plan_image(image, config_changed, full_rebuild)
            if item is not None:
                items.append(item)

        planned = {item.source_path for item in items}
        for stem, paths in self.shared_stems(manifest).items():
            if planned.intersection(paths):
                self.logger.warning(
                    f"Images share the variant directory '{stem}' and overwrite "
                    f"each other's variants: {', '.join(paths)}"
                )
        return items

    @staticmethod
    def shared_stems(manifest: Manifest) -> Dict[str, List[str]]:
        """Stems used by more than one image, mapped to their source paths."""
        by_stem: Dict[str, List[str]] = {}
        for image in manifest.iter_images():
            by_stem.setdefault(image.stem, []).append(image.source_path)
        return {stem: paths for stem, paths in by_stem.items() if len(paths) > 1}

    def _plan_image(
        self,
        image: ImageContent,
        config_changed: bool,
        full_rebuild: bool
    ) -> Optional[ImageWorkItem]:
        source_file = os.path.join(self.source_root, image.source_path)

        def work(reason: str, variants: Optional[List[Variant]] = None) -> ImageWorkItem:
            return ImageWorkItem(image.source_path, source_file, reason, variants)

        if self.force:
            return work(REASON_FORCE)
        if not image.hash:
            return work(REASON_NEW)

        try:
            fresh_hash = compute_hash(source_file)
        except OSError:
            # Reported as a per-image failure when processed
            return work(REASON_CHANGED)
        if fresh_hash != image.hash:
            return work(REASON_CHANGED)
        if full_rebuild:
            return work(REASON_CONFIG)
        if not image.width:
            return work(REASON_MISSING)

        missing = self._missing_variants(image)
        if missing:
            return work(REASON_CONFIG if config_changed else REASON_MISSING, missing)
        return None

    def _expected_variants(self, image: ImageContent) -> List[Variant]:
        sizes = candidate_sizes(
            image.width, image.height, self.options.sizes, self.options.resize_mode
        )
        formats = sorted(fmt.lower() for fmt in self.options.formats)
        return [(size, fmt) for size in sizes for fmt in formats]

    def _missing_variants(self, image: ImageContent) -> List[Variant]:
        expected = self._expected_variants(image)
        present = set(existing_variants(self.options.output_directory, image.stem, expected))
        return [v for v in expected if v not in present]

    def _sync_recorded_variants(self, image: ImageContent) -> None:
        """Drop sizes/formats that are no longer configured from an unchanged image."""
        expected = self._expected_variants(image)
        present = existing_variants(self.options.output_directory, image.stem, expected)
        image.sizes = sorted({size for size, _ in present})
        image.formats = sorted({fmt for _, fmt in present})

    def run(
        self,
        manifest: Manifest,
        progress: Optional[GenerationProgress] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> GenerationStats:
        """
        Generate variants for every image that needs work.

        Args:
            manifest: Manifest to read from and write results into
            progress: Optional progress tracker
            cancel_token: Optional token checked between images

        Returns:
            GenerationStats with results

        Raises:
            UnsupportedFormatError: If an output format cannot be encoded
        """
        self.variant_gen.check_formats(self.options.formats)

        if self._stop_requested:
            self.logger.info("Stop was requested before generation started")
            self.stats = GenerationStats(total_to_process=0, cancelled=True)
            return self.stats

        config_changed = self.config_changed(manifest)
        items = self.plan(manifest)
        planned = {item.source_path for item in items}
        if config_changed:
            for image in manifest.iter_images():
                if image.source_path not in planned and image.width:
                    self._sync_recorded_variants(image)

        self.stats = GenerationStats(total_to_process=len(items))
        self.logger.info(
            f"Starting generation: {len(items)} images to process "
            f"with {self.max_workers} workers"
        )

        if items:
            self._execute(manifest, items, progress, cancel_token)

        if self.stats.completed:
            manifest.config_hash = self.config_hash
            manifest.format_qualities = {k.lower(): v for k, v in self.options.formats.items()}
            manifest.resize_mode = self.options.resize_mode
            manifest.last_images_processed = datetime.now().isoformat(timespec='seconds')

        self.logger.info(
            f"Generation complete: {self.stats.processed} processed, "
            f"{self.stats.skipped} skipped, {self.stats.errors} errors, "
            f"{self.stats.variants_generated} variants "
            f"({self.stats.elapsed_seconds:.1f}s)"
        )
        return self.stats

    def _execute(
        self,
        manifest: Manifest,
        items: List[ImageWorkItem],
        progress: Optional[GenerationProgress],
        cancel_token: Optional[CancellationToken]
    ) -> None:
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(self._process_item, item, cancel_token): item
                for item in items
            }
            try:
                for future in as_completed(futures):
                    item = futures[future]
                    self._collect(manifest, item, future, progress)

                    if progress:
                        progress.on_progress_update(self.stats)

                    if cancel_token is not None and cancel_token.is_cancelled:
                        self.stop()
                    if self._stop_requested and not self.stats.cancelled:
                        self.logger.info("Stop requested, halting generation")
                        self.stats.cancelled = True
                        self._cancel_pending(futures)
                    if self._too_many_failures() and not self.stats.aborted:
                        self.logger.error(
                            f"Stopping: {self.stats.errors} images failed "
                            f"(tolerance {self.max_failures})"
                        )
                        self.stats.aborted = True
                        self.stop()
                        self._cancel_pending(futures)
            except BaseException:
                self.stop()
                self._cancel_pending(futures)
                raise

        # Futures cancelled before they started never reach as_completed's body
        self.stats.skipped = self.stats.total_to_process - self.stats.processed - self.stats.errors

    def _collect(self, manifest, item: ImageWorkItem, future, progress) -> None:
        """Apply one finished image to the manifest (caller's thread only)."""
        if future.cancelled():
            return
        try:
            result: VariantResult = future.result()
        except OperationCancelled:
            if progress:
                progress.on_file_skipped(item.source_path, "cancelled")
            return
        except UnsupportedFormatError:
            raise
        except Exception as e:
            error_msg = f"Error processing {item.source_path}: {e}"
            self.logger.error(error_msg)
            self.stats.errors += 1
            self.stats.error_details.append(error_msg)

            # Clearing the hash makes the next run retry this image
            image = manifest.get_image(item.source_path)
            if image is not None:
                image.hash = ''

            if progress:
                progress.on_file_processed(item.source_path, success=False, error=str(e))
            return

        manifest.set_image(item.source_path, result.content)
        self.stats.processed += 1
        self.stats.variants_generated += result.variants_written
        self.stats.bytes_generated += result.bytes_written

        if progress:
            progress.on_file_processed(
                item.source_path,
                success=True,
                variants=result.variants_written,
                bytes_written=result.bytes_written,
            )
        else:
            self.logger.debug(
                f"Processed: {item.source_path} ({item.reason}, "
                f"{result.variants_written} variants) "
                f"[{self.stats.completed_count}/{self.stats.total_to_process}]"
            )

    def _process_item(
        self,
        item: ImageWorkItem,
        cancel_token: Optional[CancellationToken]
    ) -> VariantResult:
        """Worker body: generate one image's variants; no manifest access."""
        if self._stop_requested:
            raise OperationCancelled(item.source_path)
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        options = self.options.restricted_to(item.variants)
        return self.variant_gen.process(item.source_file, options, item.source_path)

    def _too_many_failures(self) -> bool:
        return self.max_failures is not None and self.stats.errors > self.max_failures

    @staticmethod
    def _cancel_pending(futures) -> None:
        for future in futures:
            future.cancel()
