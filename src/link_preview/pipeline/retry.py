"""
Retry/backoff controller shared by the extraction and screenshot stages.

This is the only place that decides between scheduling another attempt and
giving up. Callers hand over a classified failure and a terminal callback.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import structlog

from link_preview.config import Settings
from link_preview.models.failure import FailureType, RetryableFailure
from link_preview.pipeline.jobs import JobScheduler

logger = structlog.get_logger(__name__)

TerminalHandler = Callable[[RetryableFailure], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget for one failure type."""

    max_retries: int
    delay_seconds: float
    max_delay_seconds: float | None = None
    honor_retry_after: bool = False

    def delay_for(self, failure: RetryableFailure) -> float:
        """Delay before the next attempt, always bounded."""
        delay = self.delay_seconds
        if self.honor_retry_after and failure.retry_after is not None and failure.retry_after > 0:
            delay = failure.retry_after
        if self.max_delay_seconds is not None:
            delay = min(delay, self.max_delay_seconds)
        return max(delay, 0.0)


@dataclass(frozen=True)
class RetryDecision:
    """Outcome of consulting the policy for a failure."""

    retry: bool
    delay_seconds: float = 0.0
    next_attempt: int | None = None
    reason: str = ""


def extraction_policies(settings: Settings) -> dict[FailureType, RetryPolicy]:
    """Extraction budgets. Types without an entry are terminal."""
    return {
        FailureType.RATE_LIMIT: RetryPolicy(
            settings.rate_limit_max_retries,
            settings.rate_limit_delay_seconds,
            max_delay_seconds=settings.rate_limit_max_delay_seconds,
            honor_retry_after=True,
        ),
        FailureType.SESSION_ERROR: RetryPolicy(
            settings.session_error_max_retries, settings.session_error_delay_seconds
        ),
        FailureType.HTTP_ERROR: RetryPolicy(settings.http_error_max_retries, settings.http_error_delay_seconds),
        FailureType.SCRAPE_ERROR: RetryPolicy(
            settings.scrape_error_max_retries, settings.scrape_error_delay_seconds
        ),
        FailureType.TIMEOUT: RetryPolicy(settings.timeout_max_retries, settings.timeout_delay_seconds),
        FailureType.NETWORK_ERROR: RetryPolicy(
            settings.network_error_max_retries, settings.network_error_delay_seconds
        ),
    }


def screenshot_policies(settings: Settings) -> dict[FailureType, RetryPolicy]:
    """Screenshot budgets: only throttling and upstream HTTP errors retry."""
    return {
        FailureType.RATE_LIMIT: RetryPolicy(
            settings.screenshot_rate_limit_max_retries,
            settings.screenshot_rate_limit_delay_seconds,
            max_delay_seconds=settings.rate_limit_max_delay_seconds,
            honor_retry_after=True,
        ),
        FailureType.HTTP_ERROR: RetryPolicy(
            settings.screenshot_http_error_max_retries, settings.screenshot_http_error_delay_seconds
        ),
    }


class RetryController:
    """
    Decides retry vs terminal for classified failures.

    A retry re-enqueues the same job with attempt + 1 after the policy delay.
    A terminal outcome invokes the caller's handler exactly once.
    """

    def __init__(self, scheduler: JobScheduler, policies: dict[FailureType, RetryPolicy]) -> None:
        self._scheduler = scheduler
        self._policies = dict(policies)

    @property
    def policies(self) -> dict[FailureType, RetryPolicy]:
        return dict(self._policies)

    def decide(self, failure: RetryableFailure, attempt: int) -> RetryDecision:
        """Pure decision for a failure seen on the given attempt number."""
        policy = self._policies.get(failure.type)
        if policy is None:
            return RetryDecision(retry=False, reason="terminal_type")
        if attempt >= policy.max_retries:
            return RetryDecision(retry=False, reason="budget_exhausted")
        return RetryDecision(
            retry=True,
            delay_seconds=policy.delay_for(failure),
            next_attempt=attempt + 1,
            reason="retry_scheduled",
        )

    async def handle(
        self,
        failure: RetryableFailure,
        *,
        job: str,
        card_id: str,
        attempt: int,
        on_terminal: TerminalHandler,
    ) -> RetryDecision:
        """
        Schedule a retry or run the terminal handler.

        Args:
            failure: Classified failure
            job: Job name to re-enqueue
            card_id: Card the job operates on
            attempt: Attempt number that just failed (0-based)
            on_terminal: Called with the failure when no retry is scheduled

        Returns:
            The decision that was applied
        """
        decision = self.decide(failure, attempt)
        if decision.retry:
            logger.warning(
                "retry_scheduled",
                job=job,
                card_id=card_id,
                failure_type=failure.type.value,
                attempt=attempt,
                next_attempt=decision.next_attempt,
                delay_seconds=decision.delay_seconds,
            )
            await self._scheduler.run_after(
                decision.delay_seconds,
                job,
                {"card_id": card_id, "attempt": decision.next_attempt},
            )
            return decision

        logger.warning(
            "terminal_failure",
            job=job,
            card_id=card_id,
            failure_type=failure.type.value,
            attempt=attempt,
            reason=decision.reason,
            error=failure.message,
        )
        await on_terminal(failure)
        return decision
