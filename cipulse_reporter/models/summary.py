"""Model for the run summary delivered to the collection API."""

from datetime import datetime, timedelta, timezone

from pydantic import Field, NonNegativeInt, field_serializer, model_validator

from cipulse_reporter.models.base import WireModel
from cipulse_reporter.models.record import TestRecord


def format_epoch_millis(value: int) -> str:
    """Format epoch milliseconds as ISO-8601 UTC, e.g. 2024-01-01T00:00:00.000Z."""
    seconds, millis = divmod(value, 1000)
    moment = datetime.fromtimestamp(seconds, tz=timezone.utc) + timedelta(
        milliseconds=millis
    )
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class RunSummary(WireModel):
    """Summary of one completed test run."""

    success: NonNegativeInt
    failed: NonNegativeInt
    pending: NonNegativeInt
    total: NonNegativeInt
    duration: NonNegativeInt
    start_time: int
    end_time: int
    repository_id: str | None = None
    project_name: str | None = None
    commit_sha: str | None = None
    branch: str | None = None
    build_number: str | None = None
    build_url: str | None = None
    is_ci: bool = Field(alias="isCI")
    tests: tuple[TestRecord, ...] = Field(default_factory=tuple)

    @model_validator(mode="after")
    def _check_timing(self) -> "RunSummary":
        if self.start_time > self.end_time:
            raise ValueError("start_time must not be after end_time")
        if self.duration != self.end_time - self.start_time:
            raise ValueError("duration must equal end_time - start_time")
        return self

    @field_serializer("start_time", "end_time", when_used="json")
    def _serialize_timestamp(self, value: int) -> str:
        return format_epoch_millis(value)
