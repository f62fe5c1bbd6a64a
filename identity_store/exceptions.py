"""Exceptions."""


class InvalidArgument(ValueError):
    """A required argument is missing or blank."""


class MalformedIdentifier(InvalidArgument):
    """An identifier does not have the expected (UUID) shape."""


class OperationCancelled(RuntimeError):
    """The caller cancelled the operation before it started."""


class NoSuchRole(RuntimeError):
    """Role does not exist."""


class CommitFailed(RuntimeError):
    """The transaction could not be committed, and was rolled back."""


class UnitOfWorkClosed(RuntimeError):
    """The unit of work was used after it was closed."""


class TransactionInactive(RuntimeError):
    """A repository was used after the transaction it is bound to ended."""
