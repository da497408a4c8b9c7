"""Exception hierarchy for the perf run.

Every failure that should abort a run derives from ``PerfTestError`` so the
runner can log it, record it, and still clean up the test group.
"""

from typing import Any, List, Optional


class PerfTestError(Exception):
    """Base class for all perf test failures."""


class ConfigError(PerfTestError):
    """Missing or malformed configuration."""


class AuthError(PerfTestError):
    """The identity provider refused to issue an M2M token."""


class APIError(PerfTestError):
    """A Groups or Members API call returned something other than HTTP 200.

    Attributes:
        status_code: HTTP status returned by the server.
        body:        Raw response body, kept for the report.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class DirectoryExhaustedError(PerfTestError):
    """The Members API ran out of records before the requested count."""

    def __init__(self, requested: int, received: int):
        self.requested = requested
        self.received = received
        super().__init__(
            f"Members API returned only {received} of {requested} requested members"
        )


class LatencyBudgetExceeded(PerfTestError):
    """A bulk-add chunk took longer than the per-chunk budget."""

    def __init__(self, elapsed_ms: float, budget_ms: float, chunk_index: int = 0):
        self.elapsed_ms = elapsed_ms
        self.budget_ms = budget_ms
        self.chunk_index = chunk_index
        super().__init__(
            f"API call exceeds {budget_ms / 1000:g} seconds limit: {elapsed_ms:.0f} ms"
        )


class MemberAdditionError(PerfTestError):
    """Some members in a chunk came back with status ``failed``.

    Only the failed entries are carried, in ``failed``.
    """

    def __init__(self, failed: List[Any]):
        self.failed = list(failed)
        listing = ", ".join(str(entry) for entry in self.failed)
        super().__init__(f"Failed to add {len(self.failed)} member(s): {listing}")
