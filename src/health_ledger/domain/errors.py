"""Typed failures raised by the ledger and integration services."""

REAUTH_REQUIRED = "reauth_required"
NO_TOKENS = "no tokens"


class LedgerError(Exception):
    """Base error carrying a stable failure code."""

    code = "internal"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidArgumentError(LedgerError):
    """Caller input is missing or malformed."""

    code = "invalid-argument"


class AlreadyExistsError(LedgerError):
    """A record already exists for a key that allows only one."""

    code = "already-exists"


class FailedPreconditionError(LedgerError):
    """The integration is not in a usable state."""

    code = "failed-precondition"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason

    @property
    def reauth_required(self) -> bool:
        return self.reason == REAUTH_REQUIRED


class InternalError(LedgerError):
    """Upstream or transport failure."""

    code = "internal"


class TransactionConflictError(LedgerError):
    """A document transaction kept conflicting with concurrent writers."""

    code = "aborted"

    def __init__(self, key: object, attempts: int) -> None:
        super().__init__(f"Transaction on {key} aborted after {attempts} attempts")
        self.key = key
        self.attempts = attempts
