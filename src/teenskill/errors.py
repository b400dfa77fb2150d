"""Marketplace error taxonomy.

Every guard failure has its own class and machine-readable ``code`` so the
UI can render an accurate message. The global error handler turns these into
``{"detail": ..., "code": ...}`` JSON responses with ``status_code``.
"""

from __future__ import annotations


class MarketplaceError(Exception):
    """Base class for all expected, user-facing engine errors."""

    code = "marketplace_error"
    status_code = 400
    default_message = "Request could not be completed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInputError(MarketplaceError):
    code = "invalid_input"
    status_code = 400
    default_message = "Invalid input"


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


class AuthorizationError(MarketplaceError):
    """Caller may not perform this operation."""

    code = "unauthorized"
    status_code = 403
    default_message = "Not allowed"


class WrongRoleError(AuthorizationError):
    code = "wrong_role"
    default_message = "Your role cannot perform this action"


class NotOwnerError(AuthorizationError):
    code = "not_owner"
    default_message = "You do not own this task"


# ---------------------------------------------------------------------------
# Preconditions
# ---------------------------------------------------------------------------


class PreconditionError(MarketplaceError):
    """A guard on the caller's account state failed."""

    code = "precondition_failed"
    status_code = 412


class PaymentSetupRequiredError(PreconditionError):
    code = "payment_setup_required"
    status_code = 412
    default_message = "Set up your payout method and account number before taking tasks"


class QuotaExhaustedError(PreconditionError):
    code = "quota_exhausted"
    status_code = 429

    def __init__(self, quota: int, window_days: int = 7) -> None:
        self.quota = quota
        super().__init__(
            f"Weekly quota reached. You can take at most {quota} tasks every {window_days} days."
        )


class WrongParentalCodeError(PreconditionError):
    code = "wrong_parental_code"
    status_code = 403
    default_message = "Wrong parental code"


# ---------------------------------------------------------------------------
# Lookup / state
# ---------------------------------------------------------------------------


class TaskNotFoundError(MarketplaceError):
    code = "task_not_found"
    status_code = 404
    default_message = "Task not found"


class TransitionConflictError(MarketplaceError):
    """The task is no longer in the state this operation expects."""

    code = "transition_conflict"
    status_code = 409
    default_message = "Task is no longer available for this action"


class AlreadyRegisteredError(MarketplaceError):
    code = "already_registered"
    status_code = 409
    default_message = "This account is already registered"
