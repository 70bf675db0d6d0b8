"""
ScannerProgress - Tracks and displays scan progress.
"""

import logging
import time
from typing import Optional

from .scan_stats import ScanResult

STATUS_NEW = 'new'
STATUS_CHANGED = 'changed'
STATUS_UNCHANGED = 'unchanged'


class ScannerProgress:
    """
    Tracks and displays scan progress with optional per-file output.
    """

    def __init__(
        self,
        show_files: bool = False,
        log_interval: int = 500,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize progress tracker.

        Args:
            show_files: If True, print each file as it's scanned
            log_interval: Log summary progress every N images (when not show_files)
            logger: Optional logger instance
        """
        self.show_files = show_files
        self.log_interval = log_interval
        self.logger = logger or logging.getLogger(__name__)
        self.images_seen = 0
        self.start_time: Optional[float] = None

    def on_directory_start(self, source_dir: str) -> None:
        """Called when a directory is entered."""
        if self.show_files:
            print(f"\n=== {source_dir or '(root)'} ===")
        else:
            self.logger.debug(f"Scanning directory: {source_dir or '(root)'}")

    def on_file_scanned(self, source_path: str, status: str) -> None:
        """
        Called when an image is reconciled against the manifest.

        Args:
            source_path: Relative source path
            status: new, changed or unchanged
        """
        if self.start_time is None:
            self.start_time = time.time()
        self.images_seen += 1

        if self.show_files:
            print(f"  [{status.upper()}] {source_path}")
        elif self.images_seen % self.log_interval == 0:
            elapsed = time.time() - self.start_time
            rate = self.images_seen / elapsed if elapsed > 0 else 0
            self.logger.info(f"  Progress: {self.images_seen:,} images ({rate:.0f}/sec)")

    def on_directory_skipped(self, source_dir: str, reason: str) -> None:
        if self.show_files:
            print(f"  [SKIP] {source_dir} -> {reason}")

    def on_scan_complete(self, result: ScanResult) -> None:
        """Called once the scan has finished."""
        delta = result.delta
        message = (
            f"{result.stats.images} images: {len(delta.new)} new, "
            f"{len(delta.changed)} changed, {len(delta.removed)} removed"
        )
        if self.show_files:
            print(f"--- {message} ---")
        else:
            self.logger.info(f"  {message}")

    def __call__(self, source_path: str, status: str) -> None:
        """Allow use as callback."""
        self.on_file_scanned(source_path, status)
