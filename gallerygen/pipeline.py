"""
Pipeline - Ordered build steps run against one manifest.

Steps run in ascending order. The first failing step halts the run; a step
may report "skipped" when it has nothing to do, which counts as success.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .cancellation import CancellationToken
from .errors import OperationCancelled


class PipelineOrder:
    """Standard order values; extension steps slot in between."""
    SCAN = 100
    STATISTICS = 200
    PAGES = 300
    IMAGES = 400


@dataclass
class StepResult:
    """
    Outcome of one pipeline step.

    Attributes:
        success: False halts the pipeline
        message: Human-readable summary or failure reason
        items_processed: Items the step worked on
        skipped: The step found nothing to do
    """
    success: bool
    message: str = ''
    items_processed: int = 0
    skipped: bool = False

    @classmethod
    def ok(cls, items_processed: int = 0, message: str = '') -> 'StepResult':
        return cls(success=True, message=message, items_processed=items_processed)

    @classmethod
    def fail(cls, message: str) -> 'StepResult':
        return cls(success=False, message=message)

    @classmethod
    def skip(cls, message: str = 'Nothing to do') -> 'StepResult':
        return cls(success=True, message=message, skipped=True)


class PipelineProgress:
    """
    Receives step lifecycle callbacks; the default implementation logs them.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def on_step_start(self, step: 'PipelineStep') -> None:
        self.logger.info(f"==> {step.name}: {step.description}")

    def on_step_complete(self, step: 'PipelineStep', result: StepResult, seconds: float) -> None:
        if not result.success:
            self.logger.error(f"{step.name} failed: {result.message}")
        elif result.skipped:
            self.logger.info(f"{step.name} skipped: {result.message}")
        else:
            self.logger.info(
                f"{step.name} done: {result.items_processed} items ({seconds:.1f}s)"
                + (f" - {result.message}" if result.message else "")
            )


class PipelineStep(ABC):
    """A unit of the build; implementations set name, description and order."""

    name: str = ''
    description: str = ''
    order: int = 0

    @abstractmethod
    def execute(
        self,
        progress: PipelineProgress,
        cancel_token: CancellationToken
    ) -> StepResult:
        """Run the step."""


@dataclass
class PipelineResult:
    """Results of a pipeline run, one entry per step that ran."""
    results: List[tuple] = field(default_factory=list)
    failed_step: Optional[str] = None
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return self.failed_step is None and not self.cancelled

    @property
    def message(self) -> str:
        for name, result in self.results:
            if name == self.failed_step:
                return result.message
        return 'Cancelled' if self.cancelled else ''


class Pipeline:
    """
    Runs registered steps in ascending order.

    Steps with equal order run in registration order.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._steps: List[PipelineStep] = []

    def register(self, step: PipelineStep) -> 'Pipeline':
        self._steps.append(step)
        return self

    @property
    def steps(self) -> List[PipelineStep]:
        return sorted(self._steps, key=lambda s: s.order)

    def run(
        self,
        progress: Optional[PipelineProgress] = None,
        cancel_token: Optional[CancellationToken] = None,
        step_filter: Optional[Callable[[PipelineStep], bool]] = None
    ) -> PipelineResult:
        """
        Run the steps.

        Args:
            progress: Lifecycle callbacks (default: logging)
            cancel_token: Checked between steps
            step_filter: Optional predicate selecting which steps run

        Returns:
            PipelineResult; failed_step names the step that halted the run
        """
        progress = progress or PipelineProgress(self.logger)
        cancel_token = cancel_token or CancellationToken()
        outcome = PipelineResult()

        for step in self.steps:
            if step_filter is not None and not step_filter(step):
                continue
            if cancel_token.is_cancelled:
                outcome.cancelled = True
                break

            progress.on_step_start(step)
            start = time.time()
            try:
                result = step.execute(progress, cancel_token)
            except OperationCancelled:
                outcome.cancelled = True
                break
            except Exception as e:
                self.logger.exception(f"Step {step.name} raised: {e}")
                result = StepResult.fail(str(e))

            progress.on_step_complete(step, result, time.time() - start)
            outcome.results.append((step.name, result))

            if not result.success:
                outcome.failed_step = step.name
                break

        return outcome
