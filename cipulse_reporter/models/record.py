"""Models for individual test outcomes."""

from typing import Literal, TypeAlias

from pydantic import Field, NonNegativeInt

from cipulse_reporter.models.base import WireModel

TestStatus: TypeAlias = Literal["passed", "failed", "pending", "skipped"]


class TestRecord(WireModel):
    """One observed test outcome, as sent to the collection API."""

    __test__ = False

    title: str = Field(..., description="Short name of the test")
    full_name: str = Field(..., description="Suite path and title")
    status: TestStatus = Field(..., description="Outcome of the test")
    duration: NonNegativeInt = Field(default=0, description="Elapsed milliseconds")
    failure_messages: tuple[str, ...] | None = Field(
        default=None, description="Failure messages, only for failed tests"
    )
    file_path: str = Field(..., description="Absolute path of the test file")
