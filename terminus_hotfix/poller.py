"""
Async Job Poller

Waits for asynchronous remote jobs (environment creation, backups, connection
mode changes, cache clears, deployments) to reach a terminal state.

Every wait is bounded: poll() takes an optional timeout and reports
TIMED_OUT instead of spinning forever on an unresponsive remote API.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from terminus_hotfix.errors import JobTimeoutError, RemoteJobFailedError


class JobState(Enum):
    """State of a remote job as seen by the poller."""
    PENDING = 'pending'
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'
    TIMED_OUT = 'timed out'


@dataclass(frozen=True)
class JobResult:
    """Outcome of a single check or of a whole wait."""
    state: JobState
    message: str = ''

    @property
    def terminal(self) -> bool:
        "True once the job will not change state anymore"
        return self.state is not JobState.PENDING

    @property
    def succeeded(self) -> bool:
        return self.state is JobState.SUCCEEDED

    @classmethod
    def pending(cls, message: str = '') -> 'JobResult':
        return cls(JobState.PENDING, message)


def poll(
    check: Callable[[], JobResult],
    interval: float,
    timeout: Optional[float] = None,
    backoff: float = 1.0,
    max_interval: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> JobResult:
    """
    Call check() until it returns a terminal JobResult.

    Args:
        check: Returns the current JobResult of the job
        interval: Seconds to sleep between the first two checks
        timeout: Total budget in seconds, None to wait forever
        backoff: Factor applied to the interval after each check
        max_interval: Upper bound of the interval
        sleep: Sleep function (injected by tests)
        clock: Monotonic clock (injected by tests)

    Returns:
        JobResult: the terminal result, or a TIMED_OUT result when the
        budget is exhausted first.
    """
    start = clock()
    delay = interval
    while True:
        result = check()
        if result.terminal:
            return result
        elapsed = clock() - start
        if timeout is not None and elapsed >= timeout:
            return JobResult(
                JobState.TIMED_OUT, f"Timed out after {timeout:g} seconds")
        sleep(delay if timeout is None else min(delay, timeout - elapsed))
        delay = delay * backoff
        if max_interval is not None:
            delay = min(delay, max_interval)


def wait_for_job(job, interval: float, timeout: Optional[float] = None, **kwargs) -> JobResult:
    """
    Wait for a remote job handle to finish.

    Args:
        job: Object with a check() method returning JobResult and an id
        interval, timeout, kwargs: see poll()

    Returns:
        JobResult: the successful result

    Raises:
        RemoteJobFailedError: the job finished unsuccessfully; the platform
            message is kept verbatim
        JobTimeoutError: the job did not finish within timeout
    """
    result = poll(job.check, interval, timeout=timeout, **kwargs)
    if result.state is JobState.FAILED:
        raise RemoteJobFailedError(result.message, {'job': job.id})
    if result.state is JobState.TIMED_OUT:
        raise JobTimeoutError(
            f"Remote job {job.id} did not finish: {result.message}", {'job': job.id})
    return result
