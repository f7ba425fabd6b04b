class LibraryError(Exception):
    """Base exception for circulation desk errors."""


class InvalidReferenceError(LibraryError):
    """Member id or book id does not resolve to an existing record."""


class MemberNotFoundError(InvalidReferenceError):
    """Requested memberId does not exist in the roster."""


class BookNotFoundError(InvalidReferenceError):
    """Requested bookId does not exist in the catalog."""


class BookUnavailableError(LibraryError):
    """Book exists but is already checked out."""


class NoOpenTransactionError(LibraryError):
    """No open transaction for the member/book pair."""
