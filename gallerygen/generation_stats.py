"""
GenerationStats - Statistics for an image generation run.
"""

import time
from dataclasses import dataclass, field
from typing import List


@dataclass
class GenerationStats:
    """
    Statistics for an image generation run.

    Attributes:
        total_to_process: Images planned for processing
        processed: Images processed successfully
        skipped: Images not processed because the run stopped early
        errors: Images that failed
        variants_generated: Variant files written
        bytes_generated: Total bytes of variant files written
        start_time: Start timestamp
        error_details: List of error messages
        cancelled: Run stopped by a cancellation request
        aborted: Run stopped because too many images failed
    """
    total_to_process: int = 0
    processed: int = 0
    skipped: int = 0
    errors: int = 0
    variants_generated: int = 0
    bytes_generated: int = 0
    start_time: float = field(default_factory=time.time)
    error_details: List[str] = field(default_factory=list)
    cancelled: bool = False
    aborted: bool = False

    @property
    def elapsed_seconds(self) -> float:
        """Elapsed time in seconds."""
        return time.time() - self.start_time

    @property
    def rate_per_second(self) -> float:
        """Processing rate in images per second."""
        if self.elapsed_seconds > 0:
            return self.processed / self.elapsed_seconds
        return 0.0

    @property
    def rate_per_minute(self) -> float:
        """Processing rate in images per minute."""
        return self.rate_per_second * 60

    @property
    def estimated_remaining_seconds(self) -> float:
        """Estimated time remaining in seconds."""
        if self.rate_per_second > 0:
            return self.remaining_count / self.rate_per_second
        return 0.0

    @property
    def completed_count(self) -> int:
        """Total completed (processed + skipped + errors)."""
        return self.processed + self.skipped + self.errors

    @property
    def remaining_count(self) -> int:
        """Remaining to process."""
        return self.total_to_process - self.completed_count

    @property
    def completed(self) -> bool:
        """True if the run was neither cancelled nor aborted."""
        return not (self.cancelled or self.aborted)
