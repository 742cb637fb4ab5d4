"""Assembly of the run summary from records, timing and metadata."""

from collections.abc import Mapping, Sequence

from cipulse_reporter.config import ReporterConfig
from cipulse_reporter.environment import RunEnvironment
from cipulse_reporter.models.record import TestRecord
from cipulse_reporter.models.runner import AggregateResult
from cipulse_reporter.models.summary import RunSummary

METADATA_VARIABLES: Mapping[str, str] = {
    "repository_id": "REPOSITORY_ID",
    "project_name": "PROJECT_NAME",
    "commit_sha": "GIT_COMMIT",
    "branch": "GIT_BRANCH",
    "build_number": "BUILD_NUMBER",
    "build_url": "BUILD_URL",
}


def resolve_metadata(
    config: ReporterConfig, environment: RunEnvironment
) -> Mapping[str, str | None]:
    """Resolve each metadata field: configuration, then environment, then None."""
    resolved: dict[str, str | None] = {}
    for field_name, variable in METADATA_VARIABLES.items():
        configured: str | None = getattr(config, field_name)
        resolved[field_name] = configured or environment.get(variable)
    return resolved


def build_summary(
    *,
    records: Sequence[TestRecord],
    start_time: int,
    end_time: int,
    aggregate: AggregateResult,
    config: ReporterConfig,
    environment: RunEnvironment,
) -> RunSummary:
    """Build the summary of a completed run.

    Args:
        records: Test records in arrival order
        start_time: Run start in epoch milliseconds
        end_time: Run end in epoch milliseconds
        aggregate: Run-wide counts reported by the runner
        config: Reporter configuration
        environment: Environment snapshot taken at setup

    Returns:
        Summary ready for delivery

    """
    return RunSummary(
        success=aggregate.num_passed_tests,
        failed=aggregate.num_failed_tests,
        pending=aggregate.num_pending_tests,
        total=aggregate.num_total_tests,
        duration=end_time - start_time,
        start_time=start_time,
        end_time=end_time,
        is_ci=environment.is_ci,
        tests=tuple(records),
        **resolve_metadata(config, environment),
    )
