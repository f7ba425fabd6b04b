from __future__ import annotations

import argparse
import itertools
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Callable, List, Optional, Sequence

from circulation_errors import (
    LibraryError,
    InvalidReferenceError,
    BookNotFoundError,
    MemberNotFoundError,
    BookUnavailableError,
    NoOpenTransactionError,
)


# Logging configuration
logger = logging.getLogger("library")
logger.setLevel(logging.INFO)

if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


MONEY_Q = Decimal("0.01")
ZERO = Decimal("0.00")
ONE_DAY = timedelta(days=1)
DATE_FORMAT = "%Y-%m-%d"
NOT_AVAILABLE = "N/A"

ISSUE_OK = "Book issued successfully."
ISSUE_REJECTED = "Invalid member or book, or the book is not available."
RETURN_OK = "Book returned successfully."
RETURN_INVALID = "Invalid member or book."
RETURN_NOT_FOUND = "Transaction not found or book already returned."


def money(x: Decimal) -> Decimal:
    return x.quantize(MONEY_Q, rounding=ROUND_HALF_UP)


def one_unit_per_day(days_late: int) -> Decimal:
    """
    Default fine policy: one currency unit for every whole day late.
    """
    return Decimal(days_late)


def calculate_days_late(issue_date: datetime, return_date: datetime) -> int:
    """
    Whole days elapsed between issue and return, truncated and floored at zero.
    """
    return max(0, (return_date - issue_date) // ONE_DAY)


def format_date(d: Optional[datetime]) -> str:
    return d.strftime(DATE_FORMAT) if d is not None else NOT_AVAILABLE


def format_report(title: str, lines: List[str]) -> str:
    """
    Printable block: heading line followed by one line per record.
    """
    return "\n".join([title, *lines]) + "\n"


class IdSequence:
    """Hands out 1, 2, 3, ... for one collection. Values are never reused."""

    def __init__(self, start: int = 1) -> None:
        self._counter = itertools.count(start)

    def next_id(self) -> int:
        return next(self._counter)


# Domain Models
@dataclass
class Book:
    """
    Catalog entry.

    Attributes:
        bookId (int): Sequential identifier assigned by the library.
        title (str): Book title.
        author (str): Author name.
        isAvailable (bool): False while the book is checked out.
    """
    bookId: int
    title: str
    author: str
    isAvailable: bool = True


@dataclass(frozen=True)
class Member:
    """
    Roster entry. Immutable once registered.
    """
    memberId: int
    name: str
    email: str


@dataclass
class Transaction:
    """
    One borrow lifecycle of a book by a member.

    Created open (no returnDate, zero fine) at issue time and closed exactly
    once at return time.

    Attributes:
        transactionId (int): Sequential identifier.
        member (Member): Borrowing member.
        book (Book): Borrowed book.
        issueDate (datetime): When the book was issued.
        returnDate (Optional[datetime]): When the book came back, if it has.
        fineAmount (Decimal): Late fee assessed at return time.
    """
    transactionId: int
    member: Member
    book: Book
    issueDate: datetime
    returnDate: Optional[datetime] = None
    fineAmount: Decimal = ZERO

    def is_open(self) -> bool:
        return self.returnDate is None

    @property
    def status(self) -> str:
        return "Not Returned" if self.is_open() else "Returned"


class OutcomeStatus(Enum):
    SUCCESS = "SUCCESS"
    INVALID_REFERENCE = "INVALID_REFERENCE"
    BOOK_UNAVAILABLE = "BOOK_UNAVAILABLE"
    NO_OPEN_TRANSACTION = "NO_OPEN_TRANSACTION"


@dataclass(frozen=True)
class Outcome:
    """
    Result of issueBook / returnBook.

    Rejected requests carry the reason in `status` and a user-facing
    `message`; the library state is left untouched.
    """
    status: OutcomeStatus
    message: str
    fine: Decimal = ZERO
    transaction: Optional[Transaction] = None

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS


_ERROR_STATUSES = (
    (InvalidReferenceError, OutcomeStatus.INVALID_REFERENCE),
    (BookUnavailableError, OutcomeStatus.BOOK_UNAVAILABLE),
    (NoOpenTransactionError, OutcomeStatus.NO_OPEN_TRANSACTION),
)


def _status_for(error: LibraryError) -> OutcomeStatus:
    for exc_type, status in _ERROR_STATUSES:
        if isinstance(error, exc_type):
            return status
    raise error


# Library Core
class Library:
    """
    Circulation desk that owns the catalog, the roster and the transaction
    ledger.

    Rules enforced:
        (1) A book can only be issued while it is available
        (2) A return closes the first open transaction for the member/book pair
        (3) Fines are assessed per whole day between issue and return
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = datetime.now,
        fine_policy: Callable[[int], Decimal] = one_unit_per_day,
    ) -> None:
        """
        Initializes an empty library.

        Args:
            clock: returns the current time for issue/return stamps.
            fine_policy: maps days late (> 0) to a fine amount.
        """
        self.books: List[Book] = []
        self.members: List[Member] = []
        self.transactions: List[Transaction] = []

        self._book_ids = IdSequence()
        self._member_ids = IdSequence()
        self._transaction_ids = IdSequence()

        self._clock = clock
        self._fine_policy = fine_policy

    # Catalog / roster

    def addBook(self, title: str, author: str) -> None:
        """
        Adds a new available book with the next book id.
        """
        logger.info("addBook called | title=%s author=%s", title, author)

        book = Book(self._book_ids.next_id(), title, author)
        self.books.append(book)
        logger.info("Book added | bookId=%s title=%s", book.bookId, title)

    def addMember(self, name: str, email: str) -> None:
        """
        Registers a new member with the next member id.
        """
        logger.info("addMember called | name=%s email=%s", name, email)

        member = Member(self._member_ids.next_id(), name, email)
        self.members.append(member)
        logger.info("Member added | memberId=%s name=%s", member.memberId, name)

    def findBookById(self, bookId: int) -> Optional[Book]:
        for book in self.books:
            if book.bookId == bookId:
                return book
        return None

    def findMemberById(self, memberId: int) -> Optional[Member]:
        for member in self.members:
            if member.memberId == memberId:
                return member
        return None

    def getAvailableBooks(self) -> List[Book]:
        return [b for b in self.books if b.isAvailable]

    def getOpenTransactions(self) -> List[Transaction]:
        return [t for t in self.transactions if t.is_open()]

    def getMemberTransactions(self, memberId: int) -> List[Transaction]:
        """
        Returns every transaction of a member, oldest first.

        Raises:
            MemberNotFoundError
        """
        self._get_member(memberId)
        return [t for t in self.transactions if t.member.memberId == memberId]

    # Circulation

    def issueBook(self, memberId: int, bookId: int) -> Outcome:
        """
        Issues a book to a member.

        Member and book must exist and the book must be available; otherwise
        nothing changes and a rejected Outcome is returned.
        """
        logger.info("issueBook called | memberId=%s bookId=%s", memberId, bookId)

        try:
            member = self._get_member(memberId)
            book = self._get_book(bookId)
            if not book.isAvailable:
                raise BookUnavailableError(f"Book {bookId} is not available.")
        except LibraryError as e:
            logger.warning("Issue rejected | %s", e)
            return Outcome(_status_for(e), ISSUE_REJECTED)

        transaction = Transaction(
            transactionId=self._transaction_ids.next_id(),
            member=member,
            book=book,
            issueDate=self._clock(),
        )
        self.transactions.append(transaction)
        book.isAvailable = False

        logger.info(
            "Issue successful | transactionId=%s memberId=%s bookId=%s",
            transaction.transactionId, memberId, bookId,
        )
        return Outcome(OutcomeStatus.SUCCESS, ISSUE_OK, transaction=transaction)

    def returnBook(self, memberId: int, bookId: int) -> Outcome:
        """
        Returns a book and closes its open transaction.

        Updates:
            - transaction returnDate and fineAmount
            - book availability

        Raises:
            ValueError: if the fine policy yields a negative amount.
        """
        logger.info("returnBook called | memberId=%s bookId=%s", memberId, bookId)

        try:
            self._get_member(memberId)
            book = self._get_book(bookId)
            transaction = self._find_open_transaction(memberId, bookId)
        except LibraryError as e:
            logger.warning("Return rejected | %s", e)
            status = _status_for(e)
            message = RETURN_INVALID if status is OutcomeStatus.INVALID_REFERENCE else RETURN_NOT_FOUND
            return Outcome(status, message)

        # A clock that stepped backwards still yields returnDate >= issueDate
        now = max(self._clock(), transaction.issueDate)

        days_late = calculate_days_late(transaction.issueDate, now)
        fine = ZERO
        if days_late > 0:
            fine = money(Decimal(self._fine_policy(days_late)))
            if fine < 0:
                raise ValueError(f"fine policy returned a negative amount: {fine}")

        transaction.returnDate = now
        transaction.fineAmount = fine
        book.isAvailable = True

        logger.info(
            "Return successful | transactionId=%s daysLate=%d fine=%s",
            transaction.transactionId, days_late, fine,
        )
        if fine > 0:
            message = f"Book returned successfully with a fine of ${fine}."
        else:
            message = RETURN_OK
        return Outcome(OutcomeStatus.SUCCESS, message, fine=fine, transaction=transaction)

    # Listing

    def listBooks(self) -> List[str]:
        return [
            f"Book ID: {b.bookId}, Title: {b.title}, Author: {b.author}, "
            f"Available: {'Yes' if b.isAvailable else 'No'}"
            for b in self.books
        ]

    def listMembers(self) -> List[str]:
        return [
            f"Member ID: {m.memberId}, Name: {m.name}, Email: {m.email}"
            for m in self.members
        ]

    def listTransactions(self) -> List[str]:
        return [
            f"Transaction ID: {t.transactionId}, Member: {t.member.name}, "
            f"Book: {t.book.title}, Issue Date: {format_date(t.issueDate)}, "
            f"Return Date: {format_date(t.returnDate)}, "
            f"Fine Amount: ${t.fineAmount:.2f}, Status: {t.status}"
            for t in self.transactions
        ]

    # Internal Helpers
    def _get_book(self, bookId: int) -> Book:
        book = self.findBookById(bookId)
        if book is None:
            raise BookNotFoundError(f"Book not found: bookId={bookId}")
        return book

    def _get_member(self, memberId: int) -> Member:
        member = self.findMemberById(memberId)
        if member is None:
            raise MemberNotFoundError(f"Member not found: memberId={memberId}")
        return member

    def _find_open_transaction(self, memberId: int, bookId: int) -> Transaction:
        """
        First open transaction for the pair. Closed history for the same pair
        is skipped, so a re-borrowed book resolves to its current loan.
        """
        for t in self.transactions:
            if t.member.memberId == memberId and t.book.bookId == bookId and t.is_open():
                return t
        raise NoOpenTransactionError(
            f"No open transaction for memberId={memberId}, bookId={bookId}"
        )


# Main Program
def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Demonstration scenario: two books, two members, one issue and one
    return, then the three listings.
    """
    parser = argparse.ArgumentParser(description="Run the circulation desk demonstration.")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level for the 'library' logger",
    )
    args = parser.parse_args(argv)
    logger.setLevel(args.log_level)

    library = Library()

    library.addBook("Book 1", "Author 1")
    library.addBook("Book 2", "Author 2")
    library.addMember("Member 1", "member1@example.com")
    library.addMember("Member 2", "member2@example.com")

    print(library.issueBook(1, 1).message)
    print(library.returnBook(1, 1).message)

    print(format_report("Library Books:", library.listBooks()), end="")
    print(format_report("Library Members:", library.listMembers()), end="")
    print(format_report("Library Transactions:", library.listTransactions()), end="")
    return 0


if __name__ == "__main__":
    try:
        exit_code = main()
    except Exception as e:
        logger.exception("Unhandled fatal error | %s", e)
        raise
    raise SystemExit(exit_code)
