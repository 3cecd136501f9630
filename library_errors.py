"""
library_errors.py

Exception types raised by the strict library API (`Library.checkout` /
`Library.checkin`) and by state loading. The boolean API (`borrow_book`,
`return_book`) maps all of these to False.
"""

from __future__ import annotations
from typing import Optional


class LibraryError(Exception):
    """Base exception for library system errors."""


class MemberNotFoundError(LibraryError):
    """Requested member ID is not registered."""

    def __init__(self, member_id: str):
        self.member_id = member_id
        super().__init__(f"Member not found: {member_id}")


class BookNotFoundError(LibraryError):
    """Requested ISBN is not in the catalog."""

    def __init__(self, book_id: str):
        self.book_id = book_id
        super().__init__(f"Book not found: {book_id}")


class BookUnavailableError(LibraryError):
    """Book is currently issued to a member."""

    def __init__(self, book_id: str, borrower_id: Optional[str] = None):
        self.book_id = book_id
        self.borrower_id = borrower_id
        super().__init__(f"Book {book_id} is already issued.")


class BorrowLimitExceededError(LibraryError):
    """Member already holds as many books as their membership allows."""

    def __init__(self, member_id: str, limit: int):
        self.member_id = member_id
        self.limit = limit
        super().__init__(f"Member {member_id} has reached the borrow limit of {limit}.")


class BookAlreadyAvailableError(LibraryError):
    """Return attempted for a book that is not issued."""

    def __init__(self, book_id: str):
        self.book_id = book_id
        super().__init__(f"Book {book_id} is not issued; nothing to return.")


class NotBorrowerError(LibraryError):
    """Return attempted by someone other than the recorded borrower."""

    def __init__(self, member_id: str, book_id: str, borrower_id: Optional[str]):
        self.member_id = member_id
        self.book_id = book_id
        self.borrower_id = borrower_id
        super().__init__(f"Member {member_id} does not have book {book_id} borrowed "
                         f"(held by {borrower_id}).")


class UnknownMembershipTypeError(LibraryError, ValueError):
    """No membership tier with the given name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown membership type: {name!r}")


class CorruptStateError(LibraryError):
    """A saved borrow log row could not be replayed."""
