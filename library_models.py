"""
library_models.py

Domain objects for the library: membership tiers, books and members.

Books and members only mutate themselves; keeping a book and its borrower in
step is the job of `library_system.Library`.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from library_errors import UnknownMembershipTypeError


class MembershipType(Enum):
    """
    Membership tiers and how many books each may hold at once.

    Add a member here to introduce a new tier; nothing else needs to change.
    """
    REGULAR = ("Regular", 3)
    PREMIUM = ("Premium", 5)

    def __init__(self, type_name: str, borrow_limit: int):
        self.type_name = type_name
        self.borrow_limit = borrow_limit

    @classmethod
    def from_name(cls, name: str) -> "MembershipType":
        """
        Look up a tier by its display name, ignoring case and surrounding whitespace.

        Raises UnknownMembershipTypeError if no tier matches.
        """
        wanted = (name or "").strip().lower()
        for tier in cls:
            if tier.type_name.lower() == wanted:
                return tier
        raise UnknownMembershipTypeError(name)


@dataclass(eq=False)
class Book:
    """A catalog item and who (if anyone) currently holds it."""
    isbn: str
    title: str
    author: str
    publication_year: int
    available: bool = field(default=True, init=False)
    borrower: Optional[Member] = field(default=None, init=False, repr=False)

    def mark_borrowed(self, member: Member) -> None:
        """
        Record that `member` now holds this book.

        Availability is not checked here; the Library checks it first.
        """
        self.available = False
        self.borrower = member

    def mark_returned(self) -> None:
        """
        Put the book back on the shelf.

        Safe to call on a book that is already available.
        """
        self.available = True
        self.borrower = None

    def is_available(self) -> bool:
        """Return True if nobody holds the book."""
        return self.available

    def to_record(self) -> Dict:
        """Flat dict of the book's fields with a human-friendly Availability value."""
        return {
            "Book ID": self.isbn,
            "Title": self.title,
            "Author": self.author,
            "Year": self.publication_year,
            "Availability": "Available" if self.available else "Issued",
            "Borrower": self.borrower.member_id if self.borrower is not None else "",
        }


@dataclass(eq=False)
class Member:
    """
    A library member.

    `_borrowed` holds the books currently out, in borrow order, and never grows
    past `membership_type.borrow_limit` when driven through the Library.
    `_history` records every borrow and is never pruned, so a book borrowed
    twice appears twice.
    """
    member_id: str
    name: str
    email: str
    membership_type: MembershipType
    _borrowed: List[Book] = field(default_factory=list, init=False, repr=False)
    _history: List[Book] = field(default_factory=list, init=False, repr=False)

    def can_borrow(self) -> bool:
        return len(self._borrowed) < self.membership_type.borrow_limit

    def record_borrow(self, book: Book) -> None:
        self._borrowed.append(book)
        self._history.append(book)

    def record_return(self, book: Book) -> None:
        """Drop `book` from the current holdings; does nothing if it is not held."""
        for i, held in enumerate(self._borrowed):
            if held is book:
                del self._borrowed[i]
                return

    def borrowed_books(self) -> List[Book]:
        """Copy of the books currently held. Changing the list does not affect the member."""
        return list(self._borrowed)

    def borrowing_history(self) -> List[Book]:
        return list(self._history)

    def to_record(self) -> Dict:
        return {
            "Member ID": self.member_id,
            "Name": self.name,
            "Email": self.email,
            "Membership": self.membership_type.type_name,
            "BorrowLimit": self.membership_type.borrow_limit,
            "BorrowedCount": len(self._borrowed),
            "BorrowedBooks": ",".join(b.isbn for b in self._borrowed),
        }
