"""Run lifecycle state machine driving accumulation and delivery."""

import enum
import logging
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field

from cipulse_reporter.accumulator import TestRecordAccumulator
from cipulse_reporter.config import ReporterConfig
from cipulse_reporter.environment import RunEnvironment
from cipulse_reporter.models.record import TestRecord, TestStatus
from cipulse_reporter.models.runner import AggregateResult, AssertionResult, FileResult
from cipulse_reporter.summary import build_summary
from cipulse_reporter.transmitter import DeliveryResult, Transmitter

log = logging.getLogger(__name__)

RUNNER_STATUS_TO_STATUS: Mapping[str, TestStatus] = {
    "passed": "passed",
    "failed": "failed",
    "pending": "pending",
    "skipped": "skipped",
    "todo": "pending",
    "disabled": "skipped",
}


def epoch_millis() -> int:
    """Current time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def record_from_assertion(assertion: AssertionResult, file_path: str) -> TestRecord:
    """Map a runner assertion result onto a test record."""
    status = RUNNER_STATUS_TO_STATUS.get(assertion.status)
    if status is None:
        log.warning(
            "Unknown test status %r for %s, recording as skipped",
            assertion.status,
            assertion.full_name,
        )
        status = "skipped"

    return TestRecord(
        title=assertion.title,
        full_name=assertion.full_name,
        status=status,
        duration=max(round(assertion.duration or 0), 0),
        failure_messages=(
            tuple(assertion.failure_messages) if status == "failed" else None
        ),
        file_path=file_path,
    )


class RunState(enum.Enum):
    """Lifecycle state of the reporter."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"


@dataclass(kw_only=True)
class LifecycleController:
    """Receives runner lifecycle calls and delivers the run summary.

    The controller owns the accumulator and the run timestamps. A run goes
    IDLE/COMPLETED -> RUNNING -> COMPLETED; starting again resets everything.
    Nothing raised while completing a run reaches the caller.
    """

    config: ReporterConfig
    transmitter: Transmitter
    environment: RunEnvironment = field(default_factory=RunEnvironment.from_os)
    clock: Callable[[], int] = epoch_millis

    state: RunState = field(default=RunState.IDLE, init=False)
    start_time: int | None = field(default=None, init=False)
    end_time: int | None = field(default=None, init=False)
    _accumulator: TestRecordAccumulator = field(
        default_factory=TestRecordAccumulator, init=False, repr=False
    )

    @classmethod
    def from_config(
        cls,
        config: ReporterConfig,
        environment: RunEnvironment | None = None,
    ) -> "LifecycleController":
        """Create a controller delivering through a transmitter for ``config``."""
        return cls(
            config=config,
            transmitter=Transmitter(config=config),
            environment=environment or RunEnvironment.from_os(),
        )

    @property
    def records(self) -> Sequence[TestRecord]:
        return self._accumulator.records

    def on_run_start(self) -> None:
        """Begin a new run, discarding anything left from a previous one."""
        if self.state is RunState.RUNNING:
            log.warning("Run started again before completion, discarding results")
        self._accumulator.reset()
        self.start_time = self.clock()
        self.end_time = None
        self.state = RunState.RUNNING
        log.info("CIPulse reporter started")

    def on_test_result(self, file_result: FileResult) -> None:
        """Record every test outcome of a finished test file."""
        if self.state is not RunState.RUNNING:
            log.warning(
                "Ignoring results for %s received while %s",
                file_result.test_file_path,
                self.state.value,
            )
            return

        if not file_result.test_results:
            return

        self._accumulator.extend(
            record_from_assertion(assertion, file_result.test_file_path)
            for assertion in file_result.test_results
        )

    async def on_run_complete(self, aggregate: AggregateResult) -> DeliveryResult:
        """Finish the run, then build and deliver its summary.

        Args:
            aggregate: Run-wide counts reported by the runner

        Returns:
            Delivery result; failures are reported here rather than raised

        """
        if self.state is not RunState.RUNNING or self.start_time is None:
            log.warning("Run completed while %s, nothing to send", self.state.value)
            return DeliveryResult(
                status="skipped",
                url=self.config.api_url,
                message="No run in progress",
            )

        self.end_time = max(self.clock(), self.start_time)
        self.state = RunState.COMPLETED

        try:
            summary = build_summary(
                records=self._accumulator.records,
                start_time=self.start_time,
                end_time=self.end_time,
                aggregate=aggregate,
                config=self.config,
                environment=self.environment,
            )
            result = await self.transmitter.send(summary)
        except Exception as e:
            log.error("Failed to report test results: %s", e, exc_info=e)
            return DeliveryResult(
                status="failed", url=self.config.api_url, message=str(e)
            )

        log.info(
            "Test results delivery %s: url=%s status_code=%s",
            result.status,
            result.url,
            result.status_code,
        )
        return result

    def get_last_error(self) -> None:
        """Report errors to the runner; delivery problems never fail a run."""
        return None
