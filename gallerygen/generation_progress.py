"""
GenerationProgress - Tracks and displays image generation progress.
"""

import logging
from typing import Optional

from .generation_stats import GenerationStats


class GenerationProgress:
    """
    Tracks and displays generation progress with optional per-file output.
    """

    def __init__(
        self,
        show_files: bool = False,
        log_interval: int = 100,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize progress tracker.

        Args:
            show_files: If True, print each file as it's processed
            log_interval: Log summary progress every N images (when not show_files)
            logger: Optional logger instance
        """
        self.show_files = show_files
        self.log_interval = log_interval
        self.logger = logger or logging.getLogger(__name__)
        self.last_logged = 0

    def on_file_processed(
        self,
        source_path: str,
        success: bool,
        variants: int = 0,
        bytes_written: Optional[int] = None,
        error: Optional[str] = None
    ) -> None:
        """
        Called when an image is processed.

        Args:
            source_path: Source path of the image
            success: Whether generation succeeded
            variants: Number of variant files written (if success)
            bytes_written: Total size of those files (if success)
            error: Error message (if failed)
        """
        if self.show_files:
            if success:
                size_str = self._format_bytes(bytes_written) if bytes_written else "0 B"
                print(f"  [OK] {source_path} -> {variants} variants ({size_str})")
            else:
                print(f"  [ERROR] {source_path} -> {error or 'failed'}")

    def on_file_skipped(self, source_path: str, reason: str) -> None:
        """Called when an image is skipped."""
        if self.show_files:
            print(f"  [SKIP] {source_path} -> {reason}")

    def on_progress_update(self, stats: GenerationStats) -> None:
        """
        Called after every image to report overall progress.

        Args:
            stats: Current generation statistics
        """
        total_done = stats.completed_count

        if not self.show_files and total_done - self.last_logged >= self.log_interval:
            self.last_logged = total_done

            eta_minutes = stats.estimated_remaining_seconds / 60
            self.logger.info(
                f"Progress: {stats.processed} processed, {stats.errors} errors "
                f"({stats.rate_per_minute:.1f}/min, "
                f"~{eta_minutes:.0f}m remaining, {stats.remaining_count} left)"
            )

    @staticmethod
    def _format_bytes(bytes_val: Optional[int]) -> str:
        """Format bytes as human-readable string."""
        if bytes_val is None:
            return "unknown"
        for unit in ['B', 'KB', 'MB', 'GB']:
            if bytes_val < 1024:
                return f"{bytes_val:.1f} {unit}"
            bytes_val /= 1024
        return f"{bytes_val:.1f} TB"

    def __call__(self, stats: GenerationStats) -> None:
        """Allow use as callback for stats updates."""
        self.on_progress_update(stats)
