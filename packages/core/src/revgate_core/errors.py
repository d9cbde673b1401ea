"""Failure taxonomy for a gate run.

Every fatal condition derives from RevgateError and names the stage it came
from, so the CLI can print one diagnostic of the form ``[stage] error: ...``
and pick the right exit status without inspecting messages.

NoEligibleFiles is the odd one out: it is a control-flow signal raised by the
change-set resolver when nothing in the diff is reviewable. It is not an
error and therefore does not derive from RevgateError.
"""

from __future__ import annotations


class RevgateError(Exception):
    """Base class for every failure that aborts or degrades a gate run."""

    stage = "pipeline"

    def __init__(self, message: str, stage: str | None = None):
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class ConfigurationError(RevgateError):
    """A required input is missing or a value could not be parsed."""

    stage = "config"


class ServiceError(RevgateError):
    """Base for failures talking to the analysis service."""

    stage = "analysis"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TransientServiceError(ServiceError):
    """Connection failure, 5xx, or rate limit. Retried by the client.

    Only escapes ReviewClient.submit() once the retry ceiling is reached.
    """

    def __init__(self, message: str, status_code: int | None = None, retry_after: float | None = None):
        super().__init__(message, status_code)
        self.retry_after = retry_after


class PermanentServiceError(ServiceError):
    """Credential or request rejected. Never retried; surfaced verbatim."""


class AnalysisTimedOut(RevgateError):
    """The client's wall-clock budget elapsed before a terminal reply."""

    stage = "analysis"


class Cancelled(RevgateError):
    """The run was interrupted by the enclosing pipeline (SIGINT/SIGTERM)."""


class CommentPublishError(RevgateError):
    """The report comment could not be listed, created, or updated."""

    stage = "publish"


class NoEligibleFiles(Exception):
    """No file in the revision range matches the supported extensions."""

    def __init__(self, considered: int = 0):
        super().__init__(f"No eligible files among {considered} changed file(s).")
        self.considered = considered
