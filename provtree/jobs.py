"""
provtree/jobs.py - Progress and Cancellation Contract

Long running passes accept an optional JobObserver (progress sink) and an
optional CancellationToken. Cancellation is cooperative: algorithms call
token.check() at their poll points and nothing else ever interrupts them.

run_summary_job() / run_rank_job() wrap a strategy invocation into a JobOutcome
that keeps cancellation apart from failure.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional, Protocol, runtime_checkable

from .constants import PROGRESS_DETERMINATE_MIN
from .errors import JobCanceled, JobError, TreeInvariantError

if TYPE_CHECKING:
    from .graph import BaseGraph


@runtime_checkable
class JobObserver(Protocol):
    """Producer side of progress reporting."""

    def set_range(self, minimum: int, maximum: int) -> None: ...

    def set_progress(self, value: int) -> None: ...

    def make_indeterminate(self) -> None: ...


class CancellationToken:
    """Shared cancel flag, polled by algorithms at their safe points."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def check(self) -> None:
        """Raise JobCanceled if cancellation was requested."""
        if self._cancelled:
            raise JobCanceled("Operation canceled")


def poll(token: Optional[CancellationToken]) -> None:
    """Poll an optional token."""
    if token is not None:
        token.check()


class ProgressTracker:
    """
    Wraps an optional observer for a pass over `total` work units.

    Inputs of PROGRESS_DETERMINATE_MIN units or fewer are reported as
    indeterminate; granular progress is not worth computing for them.
    """

    def __init__(self, observer: Optional[JobObserver], total: int):
        self.observer = observer
        self.total = total
        self.determinate = total > PROGRESS_DETERMINATE_MIN
        if observer is not None:
            if self.determinate:
                observer.set_range(0, total)
            else:
                observer.make_indeterminate()

    def update(self, value: int) -> None:
        if self.observer is not None and self.determinate:
            self.observer.set_progress(value)


class RecordingObserver:
    """JobObserver that remembers every call. Used by the CLI and tests."""

    def __init__(self) -> None:
        self.range: Optional[tuple] = None
        self.progress: list = []
        self.indeterminate_calls = 0

    def set_range(self, minimum: int, maximum: int) -> None:
        self.range = (minimum, maximum)

    def set_progress(self, value: int) -> None:
        self.progress.append(value)

    def make_indeterminate(self) -> None:
        self.indeterminate_calls += 1


# =============================================================================
# Job outcomes
# =============================================================================

class JobStatus(Enum):
    SUCCEEDED = "succeeded"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class JobOutcome:
    """Result of a wrapped job."""
    name: str
    status: JobStatus
    receipt: Dict[str, Any] = field(default_factory=dict)
    error: Optional[BaseException] = None
    elapsed_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status is JobStatus.SUCCEEDED

    def raise_for_status(self) -> None:
        """Re-raise a failure as JobError, a cancellation as JobCanceled."""
        if self.status is JobStatus.CANCELLED:
            raise JobCanceled(f"{self.name} was canceled")
        if self.status is JobStatus.FAILED:
            raise JobError(f"{self.name} failed: {self.error}") from self.error


def run_summary_job(
    summarizer: Any,
    graph: "BaseGraph",
    observer: Optional[JobObserver] = None,
    token: Optional[CancellationToken] = None,
) -> JobOutcome:
    """
    Run one summarizer and check the containment tree afterwards.

    A failure observed after the token was cancelled is reported as a
    cancellation, the same way the poll points would report it.
    """
    from .tree_ops import check_consistency

    start = time.perf_counter()
    name = getattr(summarizer, "name", type(summarizer).__name__)
    try:
        receipt = summarizer.summarize(graph, observer=observer, token=token)
        check_consistency(graph)
    except JobCanceled as exc:
        return JobOutcome(name, JobStatus.CANCELLED, error=exc,
                          elapsed_s=time.perf_counter() - start)
    except TreeInvariantError:
        raise
    except Exception as exc:
        status = JobStatus.CANCELLED if token is not None and token.cancelled else JobStatus.FAILED
        return JobOutcome(name, status, error=exc, elapsed_s=time.perf_counter() - start)
    return JobOutcome(name, JobStatus.SUCCEEDED, receipt=receipt,
                      elapsed_s=time.perf_counter() - start)


def run_rank_job(
    ranker: Any,
    observer: Optional[JobObserver] = None,
    token: Optional[CancellationToken] = None,
) -> JobOutcome:
    """Run a ranking pass (ProvRank or SubRank) as a job."""
    start = time.perf_counter()
    name = getattr(ranker, "name", type(ranker).__name__)
    try:
        receipt = ranker.run(observer=observer, token=token)
    except JobCanceled as exc:
        return JobOutcome(name, JobStatus.CANCELLED, error=exc,
                          elapsed_s=time.perf_counter() - start)
    except Exception as exc:
        return JobOutcome(name, JobStatus.FAILED, error=exc,
                          elapsed_s=time.perf_counter() - start)
    return JobOutcome(name, JobStatus.SUCCEEDED, receipt=receipt,
                      elapsed_s=time.perf_counter() - start)
