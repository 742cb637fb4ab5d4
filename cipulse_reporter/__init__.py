"""Test-run telemetry collector delivering run summaries to CIPulse."""

from cipulse_reporter.config import DEFAULT_API_URL, ReporterConfig
from cipulse_reporter.environment import RunEnvironment
from cipulse_reporter.lifecycle import LifecycleController, RunState
from cipulse_reporter.transmitter import DeliveryResult, Transmitter

__all__ = [
    "DEFAULT_API_URL",
    "DeliveryResult",
    "LifecycleController",
    "ReporterConfig",
    "RunEnvironment",
    "RunState",
    "Transmitter",
]
