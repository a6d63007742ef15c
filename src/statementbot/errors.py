"""Exception hierarchy for statementbot."""

from __future__ import annotations


class StatementBotError(Exception):
    """Base class for all statementbot errors."""


class StateError(StatementBotError, RuntimeError):
    """Raised when an operation is called in the wrong lifecycle state."""

    def __init__(self, operation: str, required: str, actual: str) -> None:
        self.operation = operation
        self.required = required
        self.actual = actual
        super().__init__(
            f'{operation} requires the "{required}" state, '
            f'but the current state is: "{actual}"'
        )


class BadVaultError(StatementBotError):
    """Raised when the vault file does not belong to this application or has an unknown schema."""


class DecryptionError(StatementBotError, ValueError):
    """Raised when an envelope cannot be decrypted (wrong password or corrupted data)."""


class MatchCountError(StatementBotError, LookupError):
    """Raised when exactly one matching element was required but *count* were found."""

    def __init__(self, description: str, count: int) -> None:
        self.count = count
        super().__init__(
            f"{description} FAILED: expected to find exactly 1 matching element, "
            f"but found {count}"
        )


class SessionClosedError(StatementBotError):
    """Raised when a wait is abandoned because the browser session was closed."""


class NoInputError(StatementBotError, ValueError):
    """Raised when the user gives no input for a prompt."""
