"""pytest plugin reporting test runs to CIPulse.

Registered through the ``pytest11`` entry point. The plugin stays inert
unless ``--cipulse`` is passed or an API key is configured.
"""

import asyncio
import logging
import os
from collections import Counter
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pytest
from pydantic import ValidationError

from cipulse_reporter.config import ReporterConfig
from cipulse_reporter.environment import RunEnvironment
from cipulse_reporter.lifecycle import LifecycleController
from cipulse_reporter.models.runner import AggregateResult, AssertionResult, FileResult
from cipulse_reporter.transmitter import DeliveryResult

log = logging.getLogger(__name__)

PLUGIN_NAME = "cipulse-reporter"

# (option dest, ini name, help)
METADATA_OPTIONS: Sequence[tuple[str, str, str]] = (
    ("repository_id", "cipulse_repository_id", "Repository identifier"),
    ("project_name", "cipulse_project_name", "Project name"),
    ("commit_sha", "cipulse_commit_sha", "Commit SHA under test"),
    ("branch", "cipulse_branch", "Branch under test"),
    ("build_number", "cipulse_build_number", "CI build number"),
    ("build_url", "cipulse_build_url", "CI build URL"),
)

STATUS_SYMBOLS = {
    "delivered": "✓",
    "failed": "✗",
    "skipped": "!",
}


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("cipulse", "CIPulse test reporting")
    group.addoption(
        "--cipulse",
        action="store_true",
        default=None,
        help="Send the test run summary to CIPulse",
    )
    group.addoption(
        "--cipulse-api-key",
        dest="cipulse_api_key",
        help="CIPulse API key (default: $CIPULSE_API_KEY)",
    )
    group.addoption(
        "--cipulse-url",
        dest="cipulse_api_url",
        help="Collection endpoint URL (default: $CIPULSE_API_URL)",
    )
    group.addoption(
        "--cipulse-timeout",
        dest="cipulse_timeout",
        help="Delivery timeout in seconds",
    )
    for dest, ini_name, help_text in METADATA_OPTIONS:
        group.addoption(
            "--cipulse-" + dest.replace("_", "-"),
            dest=ini_name,
            help=f"{help_text} (overrides the environment)",
        )

    parser.addini("cipulse_enabled", "Send the test run summary to CIPulse", "bool")
    parser.addini("cipulse_api_key", "CIPulse API key")
    parser.addini("cipulse_api_url", "Collection endpoint URL")
    parser.addini("cipulse_timeout", "Delivery timeout in seconds")
    for _, ini_name, help_text in METADATA_OPTIONS:
        parser.addini(ini_name, help_text)


def get_setting(config: pytest.Config, name: str, env_var: str | None = None) -> Any:
    """Read a setting: command line, then ini file, then environment."""
    value = config.getoption(name, default=None)
    if value is None:
        value = config.getini(name) or None
    if value is None and env_var is not None:
        value = os.environ.get(env_var) or None
    return value


def load_reporter_config(config: pytest.Config) -> ReporterConfig:
    """Build the reporter configuration from pytest options."""
    settings: dict[str, Any] = {
        "api_key": get_setting(config, "cipulse_api_key", "CIPULSE_API_KEY"),
        "api_url": get_setting(config, "cipulse_api_url", "CIPULSE_API_URL"),
    }
    if (timeout := get_setting(config, "cipulse_timeout")) is not None:
        settings["timeout"] = timeout
    for dest, ini_name, _ in METADATA_OPTIONS:
        settings[dest] = get_setting(config, ini_name)
    return ReporterConfig(**settings)


def is_enabled(config: pytest.Config, reporter_config: ReporterConfig) -> bool:
    flag = config.getoption("cipulse", default=None)
    if flag is None:
        flag = config.getini("cipulse_enabled")
    return bool(flag) or reporter_config.delivery_enabled


def warn(config: pytest.Config, message: str) -> None:
    """Surface a configuration problem without failing the run."""
    log.warning(message)
    try:
        config.issue_config_time_warning(pytest.PytestConfigWarning(message), 3)
    except pytest.PytestConfigWarning:
        # raised instead of recorded under "-W error"; the log line above stands
        pass


def pytest_configure(config: pytest.Config) -> None:
    if hasattr(config, "workerinput"):
        # pytest-xdist workers forward their reports to the controller process
        return

    try:
        reporter_config = load_reporter_config(config)
    except ValidationError as e:
        warn(config, f"Invalid CIPulse configuration, reporting disabled: {e}")
        return

    if not is_enabled(config, reporter_config):
        return

    if not reporter_config.delivery_enabled:
        warn(
            config,
            "CIPulse reporting is enabled but no API key was provided "
            "(--cipulse-api-key, cipulse_api_key or CIPULSE_API_KEY); "
            "test results will not be sent",
        )

    controller = LifecycleController.from_config(
        reporter_config, environment=RunEnvironment.from_os()
    )
    config.pluginmanager.register(CIPulsePlugin(controller), PLUGIN_NAME)


def assertion_from_reports(
    nodeid: str, reports: Sequence[pytest.TestReport]
) -> AssertionResult:
    """Fold the setup, call and teardown reports of a test into one outcome."""
    status = "passed"
    failure_messages: list[str] = []
    duration = 0.0

    for report in reports:
        duration += report.duration
        if report.failed:
            status = "failed"
            failure_messages.append(report.longreprtext)
        elif report.skipped and status != "failed":
            status = "pending" if hasattr(report, "wasxfail") else "skipped"

    # parametrize ids may contain "::" themselves
    base, bracket, params = nodeid.partition("[")
    parts = base.split("::")
    parts[-1] += bracket + params
    return AssertionResult(
        title=parts[-1],
        full_name=" ".join(parts[1:]) or parts[-1],
        status=status,
        duration=duration * 1000,
        failure_messages=failure_messages,
    )


class CIPulsePlugin:
    """Translates pytest hooks into reporter lifecycle calls."""

    def __init__(self, controller: LifecycleController) -> None:
        self.controller = controller
        self.delivery: DeliveryResult | None = None
        self._reports: dict[str, list[pytest.TestReport]] = {}
        self._outcomes: Counter[str] = Counter()
        self._rootpath = Path.cwd()

    def pytest_sessionstart(self, session: pytest.Session) -> None:
        self._rootpath = session.config.rootpath
        self._reports.clear()
        self._outcomes.clear()
        self.delivery = None
        self.controller.on_run_start()

    def pytest_runtest_logreport(self, report: pytest.TestReport) -> None:
        self._reports.setdefault(report.nodeid, []).append(report)

    def pytest_runtest_logfinish(
        self, nodeid: str, location: tuple[str, int | None, str]
    ) -> None:
        reports = self._reports.pop(nodeid, [])
        if not reports:
            return

        assertion = assertion_from_reports(nodeid, reports)
        self._outcomes[assertion.status] += 1
        file_path = (self._rootpath / location[0]).resolve()
        self.controller.on_test_result(
            FileResult(test_file_path=str(file_path), test_results=[assertion])
        )

    def pytest_sessionfinish(self, session: pytest.Session) -> None:
        observed = sum(self._outcomes.values())
        aggregate = AggregateResult(
            num_passed_tests=self._outcomes["passed"],
            num_failed_tests=self._outcomes["failed"],
            num_pending_tests=self._outcomes["pending"] + self._outcomes["skipped"],
            num_total_tests=max(session.testscollected, observed),
        )
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            self.delivery = asyncio.run(self.controller.on_run_complete(aggregate))
            return

        log.error(
            "Cannot send test results to %s from inside a running event loop",
            self.controller.config.api_url,
        )
        self.delivery = DeliveryResult(
            status="failed",
            url=self.controller.config.api_url,
            message="event loop already running",
        )

    def pytest_terminal_summary(self, terminalreporter: Any) -> None:
        if self.delivery is None:
            return
        symbol = STATUS_SYMBOLS.get(self.delivery.status, "?")
        line = f"cipulse: {symbol} test results {self.delivery.status}"
        if self.delivery.message:
            line += f" ({self.delivery.message})"
        terminalreporter.write_line(line)
