"""Domain errors raised by the accounts core.

Adapters translate these into their own failure shapes (HTTP status
codes, CLI error results). The core never catches them itself.
"""


class AccountsError(Exception):
    """Base class for all accounts domain errors."""


class ValidationError(AccountsError):
    """Input violates a field constraint or a uniqueness invariant."""


class NotFoundError(AccountsError):
    """A referenced user identifier does not exist."""
