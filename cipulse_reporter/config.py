"""Configuration for the CIPulse reporter."""

from typing import Any

from pydantic import BaseModel, Field, PositiveFloat, SecretStr, field_validator

DEFAULT_API_URL = "https://app.cipulse.dev/api/test-reports"


class ReporterConfig(BaseModel):
    """Configuration for the CIPulse reporter.

    Metadata fields left unset fall back to environment variables when the
    summary is built, see ``cipulse_reporter.summary``.
    """

    api_key: SecretStr | None = None
    api_url: str = DEFAULT_API_URL
    repository_id: str | None = None
    project_name: str | None = None
    commit_sha: str | None = None
    branch: str | None = None
    build_number: str | None = None
    build_url: str | None = None
    timeout: PositiveFloat = Field(default=30.0, description="Seconds per delivery")

    @field_validator(
        "api_key",
        "repository_id",
        "project_name",
        "commit_sha",
        "branch",
        "build_number",
        "build_url",
        mode="before",
    )
    @classmethod
    def _blank_as_missing(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("api_url", mode="before")
    @classmethod
    def _default_blank_url(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_API_URL
        return value

    @property
    def delivery_enabled(self) -> bool:
        """Whether an API key is available for delivery."""
        return self.api_key is not None
