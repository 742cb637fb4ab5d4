"""Snapshot of the process environment used for run metadata."""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

CI_INDICATOR_VARIABLES: frozenset[str] = frozenset(
    [
        "CI",
        "CONTINUOUS_INTEGRATION",
        "BUILD_NUMBER",
        "RUN_ID",
        "GITHUB_ACTIONS",
        "GITLAB_CI",
        "CIRCLECI",
        "TRAVIS",
        "JENKINS_URL",
        "TF_BUILD",
        "BITBUCKET_BUILD_NUMBER",
        "BUILDKITE",
        "TEAMCITY_VERSION",
        "CODEBUILD_BUILD_ID",
    ]
)


@dataclass(frozen=True, kw_only=True)
class RunEnvironment:
    """Immutable copy of the environment variables relevant to a run.

    Captured once when the reporter is set up so metadata resolution never
    reads ``os.environ`` directly.
    """

    variables: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "variables", MappingProxyType(dict(self.variables)))

    @classmethod
    def from_os(cls) -> "RunEnvironment":
        """Capture the current process environment."""
        return cls(variables=os.environ)

    def get(self, name: str) -> str | None:
        """Return a variable's value, treating empty values as unset."""
        value = self.variables.get(name)
        return value if value else None

    @property
    def is_ci(self) -> bool:
        """Whether any recognized CI indicator variable is set."""
        return any(self.get(name) is not None for name in CI_INDICATOR_VARIABLES)
