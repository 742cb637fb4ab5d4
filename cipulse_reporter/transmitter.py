"""Delivery of run summaries to the CIPulse collection API."""

import logging
from dataclasses import dataclass
from typing import Literal

import aiohttp

from cipulse_reporter.config import ReporterConfig
from cipulse_reporter.models.summary import RunSummary

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class DeliveryResult:
    """Outcome of one delivery attempt."""

    status: Literal["delivered", "failed", "skipped"]
    url: str
    status_code: int | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "delivered"


@dataclass(frozen=True, kw_only=True)
class Transmitter:
    """Sends a run summary to the collection API in a single POST.

    Failures never leave this class: they are logged and returned as a
    ``failed`` result. There is exactly one attempt per summary.
    """

    config: ReporterConfig

    async def send(self, summary: RunSummary) -> DeliveryResult:
        """Deliver the summary and report what happened.

        Args:
            summary: Summary of the completed run

        Returns:
            Delivery result; ``skipped`` when no API key is configured

        """
        url = self.config.api_url

        if self.config.api_key is None:
            log.warning("No CIPulse API key configured, not sending test results")
            return DeliveryResult(
                status="skipped", url=url, message="No API key configured"
            )

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key.get_secret_value()}",
        }
        timeout = aiohttp.ClientTimeout(total=self.config.timeout)

        log.info("Sending test results to %s (%d test(s))", url, len(summary.tests))

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(
                    url, json=summary.to_payload(), headers=headers
                ) as response:
                    if not 200 <= response.status < 300:
                        text = await response.text()
                        log.error(
                            "Failed to send test results to %s: %s %s",
                            url,
                            response.status,
                            text,
                        )
                        return DeliveryResult(
                            status="failed",
                            url=url,
                            status_code=response.status,
                            message=f"{response.status} {text}".strip(),
                        )
                    status_code = response.status
        except TimeoutError:
            log.error(
                "Timed out sending test results to %s after %ss",
                url,
                self.config.timeout,
            )
            return DeliveryResult(
                status="failed",
                url=url,
                message=f"Timed out after {self.config.timeout}s",
            )
        except aiohttp.ClientError as e:
            log.error("Failed to send test results to %s: %r", url, e)
            return DeliveryResult(status="failed", url=url, message=repr(e))

        log.info("Test results successfully sent to %s", url)
        return DeliveryResult(status="delivered", url=url, status_code=status_code)
