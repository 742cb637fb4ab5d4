"""Models for results reported by the host test runner."""

from collections.abc import Sequence

from pydantic import Field

from cipulse_reporter.models.base import Model


class AssertionResult(Model):
    """Outcome of an individual test as reported by the runner.

    ``status`` keeps the runner's own vocabulary; it is mapped onto the
    collection API statuses when the record is built.
    """

    title: str
    full_name: str
    status: str
    duration: float | None = Field(default=None, description="Milliseconds")
    failure_messages: Sequence[str] = Field(default_factory=tuple)


class FileResult(Model):
    """Results of all tests in one test file."""

    test_file_path: str
    test_results: Sequence[AssertionResult] | None = None


class AggregateResult(Model):
    """Run-wide counts reported by the runner once all tests finished."""

    num_passed_tests: int = 0
    num_failed_tests: int = 0
    num_pending_tests: int = 0
    num_total_tests: int = 0
