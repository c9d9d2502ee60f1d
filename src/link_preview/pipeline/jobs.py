"""Job scheduling protocol and an in-memory scheduler."""

import time
from abc import abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import anyio
import structlog

logger = structlog.get_logger(__name__)

EXTRACT_METADATA_JOB = "extract_link_metadata"
CAPTURE_SCREENSHOT_JOB = "capture_link_screenshot"

JobHandler = Callable[[dict[str, Any]], Awaitable[Any]]


@runtime_checkable
class JobScheduler(Protocol):
    """Durable delayed-job queue. Payloads must be JSON-safe."""

    @abstractmethod
    async def run_after(self, delay_seconds: float, job: str, payload: dict[str, Any]) -> None:
        """Enqueue a job to run after a delay."""
        ...


@dataclass(order=True)
class ScheduledJob:
    """A queued job, ordered by due time then insertion order."""

    due_at: float
    sequence: int
    job: str = field(compare=False)
    payload: dict[str, Any] = field(compare=False)
    delay_seconds: float = field(compare=False, default=0.0)


class InMemoryScheduler:
    """
    In-process scheduler used by the MCP server and tests.

    Jobs are only recorded; run_due() drains them and dispatches by name.
    Delays are honored relative to the injected clock.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._jobs: list[ScheduledJob] = []
        self._sequence = 0
        self._lock = anyio.Lock()

    @property
    def pending(self) -> list[ScheduledJob]:
        return sorted(self._jobs)

    async def run_after(self, delay_seconds: float, job: str, payload: dict[str, Any]) -> None:
        async with self._lock:
            self._sequence += 1
            self._jobs.append(
                ScheduledJob(
                    due_at=self._clock() + max(delay_seconds, 0.0),
                    sequence=self._sequence,
                    job=job,
                    payload=dict(payload),
                    delay_seconds=delay_seconds,
                )
            )
        logger.debug("job_scheduled", job=job, delay_seconds=delay_seconds, payload=payload)

    async def _pop_due(self, ignore_delay: bool) -> ScheduledJob | None:
        async with self._lock:
            if not self._jobs:
                return None
            self._jobs.sort()
            candidate = self._jobs[0]
            if not ignore_delay and candidate.due_at > self._clock():
                return None
            return self._jobs.pop(0)

    async def run_due(
        self,
        handlers: dict[str, JobHandler],
        ignore_delay: bool = False,
        max_jobs: int = 100,
    ) -> int:
        """
        Run jobs that are due, including ones they enqueue.

        Args:
            handlers: Job name -> async handler taking the payload
            ignore_delay: Run queued jobs immediately regardless of delay
            max_jobs: Upper bound on jobs run in one call

        Returns:
            Number of jobs run
        """
        ran = 0
        while ran < max_jobs:
            scheduled = await self._pop_due(ignore_delay)
            if scheduled is None:
                break
            handler = handlers.get(scheduled.job)
            if handler is None:
                logger.warning("job_handler_missing", job=scheduled.job)
                continue
            await handler(scheduled.payload)
            ran += 1
        return ran
