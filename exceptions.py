"""Error kinds raised by the catalog, registry and loan ledger.

Every check that can raise one of these runs before any collection is
written, so a failed operation never leaves partial state behind.
"""


class LibraryError(Exception):
    """Base class for all library record-keeping failures."""

    kind = "library_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(LibraryError, ValueError):
    """Required input is missing or malformed."""

    kind = "validation_error"


class NotFoundError(LibraryError, LookupError):
    """A referenced book, borrower or active borrow record does not exist."""

    kind = "not_found"


class ConflictError(LibraryError, ValueError):
    """The operation would break an invariant (duplicate email, copies on loan, none left)."""

    kind = "conflict"
