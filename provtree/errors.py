"""
provtree/errors.py - Error taxonomy

InvalidGraphError   wrong graph specialization, raised before any mutation
JobCanceled         cooperative cancellation observed at a poll point
JobError            a job failed; the cause is chained
TreeInvariantError  the containment tree is not where the caller believes it is
"""

from receipts import StopRule


class InvalidGraphError(TypeError):
    """A summarizer was handed a graph it cannot work on."""
    pass


class JobCanceled(Exception):
    """Raised when a poll point observes a cancellation request."""
    pass


class JobError(Exception):
    """Raised by job wrappers when the wrapped operation fails."""
    pass


class TreeInvariantError(StopRule):
    """Containment tree invariant violated. Never caught or retried."""
    pass
