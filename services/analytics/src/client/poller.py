"""Fixed-interval polling of a job until it finishes or a deadline passes."""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from src.domain.statuses import JobStatus, parse_status

Job = Dict[str, Any]


@dataclass(frozen=True)
class PollProfile:
    interval: float
    timeout: float


POLL_PROFILES: Dict[str, PollProfile] = {
    "import": PollProfile(interval=2.0, timeout=5 * 60),
    "classify": PollProfile(interval=2.0, timeout=10 * 60),
    "optimize": PollProfile(interval=3.0, timeout=10 * 60),
}


@dataclass(frozen=True)
class JobPollResult:
    job: Optional[Job]
    timed_out: bool = False

    @property
    def status(self) -> Optional[str]:
        return self.job.get("status") if self.job else None

    @property
    def results(self) -> Any:
        return self.job.get("results") if self.job else None


class JobPoller:
    """Polls ``fetch_job`` every ``interval`` seconds.

    Stops on a terminal status (completed/failed). Every other status,
    including unrecognised ones, keeps polling. Hitting ``timeout`` returns
    the last seen job with ``timed_out`` set; the job itself is untouched.
    """

    def __init__(
        self,
        fetch_job: Callable[[str], Job],
        interval: float,
        timeout: float,
        sleep: Optional[Callable[[float], None]] = None,
        clock: Optional[Callable[[], float]] = None,
        on_update: Optional[Callable[[Job], None]] = None,
    ):
        self.fetch_job = fetch_job
        self.interval = interval
        self.timeout = timeout
        self.sleep = sleep or time.sleep
        self.clock = clock or time.monotonic
        self.on_update = on_update

    @classmethod
    def for_profile(cls, name: str, fetch_job: Callable[[str], Job], **kwargs) -> "JobPoller":
        profile = POLL_PROFILES[name]
        return cls(fetch_job, profile.interval, profile.timeout, **kwargs)

    def wait(self, job_id: str) -> JobPollResult:
        started = self.clock()
        job: Optional[Job] = None
        while self.clock() - started < self.timeout:
            job = self.fetch_job(job_id)
            if self.on_update is not None:
                self.on_update(job)
            status = parse_status(JobStatus, job.get("status"))
            if status is not None and status.is_terminal:
                return JobPollResult(job=job)
            self.sleep(self.interval)
        return JobPollResult(job=job, timed_out=True)
