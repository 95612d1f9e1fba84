"""Exception types for cleaninbox.

Per-item failures inside batch operations (cleaning, unsubscribing) are
captured in the result sequence instead of being raised. Unknown user ids in
entitlement operations are signalled by ``None``, not by an exception.
"""


class CleanInboxError(Exception):
    """Base exception for all cleaninbox errors."""


class ValidationError(CleanInboxError):
    """Raised when a call is structurally invalid (bad id, missing token, bad level)."""


class JobConflictError(ValidationError):
    """Raised when a job id is already registered with the scheduler."""

    def __init__(self, job_id: str):
        super().__init__(f"Job with id {job_id!r} already exists.")
        self.job_id = job_id


class JobNotFoundError(ValidationError):
    """Raised when removing a job id the scheduler does not know."""

    def __init__(self, job_id: str):
        super().__init__(f"Job with id {job_id!r} does not exist.")
        self.job_id = job_id


class AuthenticationError(CleanInboxError):
    """Raised when OAuth tokens cannot be obtained or refreshed."""


class ExternalCallError(CleanInboxError):
    """Raised when a provider or HTTP call fails.

    Attributes:
        status_code: HTTP status code, if the failure came with one
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
