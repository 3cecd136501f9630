"""
library_system.py
"""

from __future__ import annotations
import datetime
import logging
import pathlib
from threading import Lock
from typing import Dict, List, Optional, Union

import pandas as pd

from library_errors import (
    BookAlreadyAvailableError,
    BookNotFoundError,
    BookUnavailableError,
    BorrowLimitExceededError,
    CorruptStateError,
    LibraryError,
    MemberNotFoundError,
    NotBorrowerError,
)
from library_models import Book, Member, MembershipType

# Configuration
DEFAULT_DATA_DIR = "library_data"
BOOKS_CSV = "book_records.csv"
MEMBERS_CSV = "member_records.csv"
BORROW_LOG_CSV = "borrow_log.csv"

BOOK_COLUMNS = ["Book ID", "Title", "Author", "Year", "Availability", "Borrower"]
MEMBER_COLUMNS = ["Member ID", "Name", "Email", "Membership", "BorrowLimit", "BorrowedCount", "BorrowedBooks"]
LOG_COLUMNS = ["timestamp", "member_id", "book_id", "action"]

logger = logging.getLogger("LibrarySystem")


class Library:
    """
    Library keeps the catalog and the member registry in memory and coordinates
    borrowing and returning between them.

    A book is issued if and only if exactly one member holds it and that member is
    the book's recorded borrower. Only the Library changes a book and a member
    together, and it does so while holding `self.lock`, so concurrent callers see
    either the state before a borrow/return or the state after it.

    Every successful borrow and return, and every replacement of an existing book
    or member, is appended to an in-memory borrow log, which is what `save_state`
    persists and `load_state` replays.
    """

    def __init__(self, strict_returns: bool = False):
        """
        Initialize an empty Library.

        Args:
            strict_returns: when True, a return is rejected unless it comes from the
                member recorded as the book's borrower. When False (default) any
                registered member may return an issued book.
        """
        self.books: Dict[str, Book] = {}
        self.members: Dict[str, Member] = {}
        self.borrow_log: List[Dict[str, str]] = []
        self.strict_returns = bool(strict_returns)
        self.lock = Lock()

    # ---------------- Registration ----------------
    def add_book(self, book: Book) -> Book:
        """
        Add a book to the catalog, keyed by its ISBN.

        An existing book with the same ISBN is replaced. Whoever holds the old copy
        keeps it, and the replacement starts out available. The replacement is
        recorded in the borrow log so that `load_state` can reproduce it.
        """
        with self.lock:
            if book.isbn in self.books:
                logger.warning("Replacing existing book %s", book.isbn)
                self._append_log("replace", "", book.isbn, None)
            self.books[book.isbn] = book
        logger.info("Added book %s", book.isbn)
        return book

    def register_member(self, member: Member) -> Member:
        """
        Register a member, keyed by member ID.

        An existing member with the same ID is replaced by a member with no books.
        Books issued to the old record stay issued to it.
        """
        with self.lock:
            if member.member_id in self.members:
                logger.warning("Replacing existing member %s", member.member_id)
                self._append_log("replace", member.member_id, "", None)
            self.members[member.member_id] = member
        logger.info("Registered member %s (%s)", member.member_id, member.membership_type.type_name)
        return member

    def new_book(self, isbn: str, title: str, author: str, publication_year: int) -> Book:
        """Create a book from its fields and add it to the catalog."""
        return self.add_book(Book(isbn, title, author, int(publication_year)))

    def new_member(self, member_id: str, name: str, email: str,
                   membership: Union[str, MembershipType] = "Regular") -> Member:
        """
        Create a member and register it.

        `membership` is either a MembershipType or a tier name such as "Premium".
        Raises UnknownMembershipTypeError for an unrecognised tier name.
        """
        if not isinstance(membership, MembershipType):
            membership = MembershipType.from_name(membership)
        return self.register_member(Member(member_id, name, email, membership))

    # ---------------- Core operations ----------------
    def checkout(self, member_id: str, book_id: str) -> Book:
        """
        Issue a book to a member.

        Raises:
            MemberNotFoundError, BookNotFoundError: unknown IDs.
            BookUnavailableError: the book is already issued.
            BorrowLimitExceededError: the member holds as many books as their tier allows.
        """
        with self.lock:
            book = self._checkout(member_id, book_id)
        logger.info("Borrowed %s to %s", book_id, member_id)
        return book

    def checkin(self, member_id: str, book_id: str) -> Book:
        """
        Take back an issued book.

        Raises:
            MemberNotFoundError, BookNotFoundError: unknown IDs.
            BookAlreadyAvailableError: the book is not issued.
            NotBorrowerError: strict_returns is on and the member is not the borrower.
        """
        with self.lock:
            book = self._checkin(member_id, book_id, strict=self.strict_returns)
        logger.info("Book %s returned by %s", book_id, member_id)
        return book

    def borrow_book(self, member_id: str, book_id: str) -> bool:
        """
        Borrow a book for a member.

        Returns True on success. Unknown member or book, an issued book and a member
        at their limit all return False and leave the library unchanged.
        """
        try:
            self.checkout(member_id, book_id)
        except LibraryError as exc:
            logger.debug("Borrow rejected: %s", exc)
            return False
        return True

    def return_book(self, member_id: str, book_id: str) -> bool:
        """
        Return a book on behalf of a member.

        Returns True on success, False for unknown IDs or a book that is not issued
        (and, with strict_returns, a member who is not the borrower).
        """
        try:
            self.checkin(member_id, book_id)
        except LibraryError as exc:
            logger.debug("Return rejected: %s", exc)
            return False
        return True

    # -------------- Internal helpers ----------------
    def _get_member(self, member_id: str) -> Member:
        member = self.members.get(member_id)
        if member is None:
            raise MemberNotFoundError(member_id)
        return member

    def _get_book(self, book_id: str) -> Book:
        book = self.books.get(book_id)
        if book is None:
            raise BookNotFoundError(book_id)
        return book

    def _checkout(self, member_id: str, book_id: str, timestamp: Optional[str] = None,
                  enforce_limit: bool = True) -> Book:
        # caller holds self.lock
        member = self._get_member(member_id)
        book = self._get_book(book_id)
        if not book.is_available():
            holder = book.borrower.member_id if book.borrower is not None else None
            raise BookUnavailableError(book_id, holder)
        if enforce_limit and not member.can_borrow():
            raise BorrowLimitExceededError(member_id, member.membership_type.borrow_limit)

        book.mark_borrowed(member)
        member.record_borrow(book)
        self._append_log("borrow", member_id, book_id, timestamp)
        return book

    def _checkin(self, member_id: str, book_id: str, strict: bool,
                 timestamp: Optional[str] = None) -> Book:
        # caller holds self.lock
        member = self._get_member(member_id)
        book = self._get_book(book_id)
        if book.is_available():
            raise BookAlreadyAvailableError(book_id)

        holder = book.borrower if book.borrower is not None else member
        if holder.member_id != member_id:
            if strict:
                raise NotBorrowerError(member_id, book_id, holder.member_id)
            logger.warning("Book %s returned by %s on behalf of borrower %s",
                           book_id, member_id, holder.member_id)

        book.mark_returned()
        holder.record_return(book)
        self._append_log("return", member_id, book_id, timestamp)
        return book

    def _append_log(self, action: str, member_id: str, book_id: str, timestamp: Optional[str]) -> None:
        if not timestamp:
            timestamp = datetime.datetime.now(datetime.timezone.utc).isoformat()
        self.borrow_log.append({"timestamp": timestamp, "member_id": member_id,
                                "book_id": book_id, "action": action})

    def _replay_replace(self, member_id: str, book_id: str, timestamp: str) -> None:
        """
        Swap in a fresh copy of a book or member, as `add_book`/`register_member` did.

        The saved CSVs only keep the latest fields, so the copy reuses them. The old
        object stays with whoever holds it. Caller holds self.lock.
        """
        if book_id:
            old = self._get_book(book_id)
            self.books[book_id] = Book(old.isbn, old.title, old.author, old.publication_year)
        elif member_id:
            old = self._get_member(member_id)
            self.members[member_id] = Member(old.member_id, old.name, old.email, old.membership_type)
        else:
            raise LibraryError("replace entry names neither a book nor a member")
        self._append_log("replace", member_id, book_id, timestamp)

    # ---------------- Queries ----------------
    def get_book(self, book_id: str) -> Optional[Book]:
        """
        Retrieve a single book by ISBN.

        Returns the Book or None if not found.
        """
        return self.books.get(book_id)

    def get_member(self, member_id: str) -> Optional[Member]:
        """
        Retrieve a single member by ID.

        Returns the Member or None if not found.
        """
        return self.members.get(member_id)

    def search_by_title(self, fragment: str) -> List[Book]:
        """Books whose title contains `fragment`, ignoring case."""
        q = (fragment or "").lower()
        return [b for b in list(self.books.values()) if q in b.title.lower()]

    def search_by_author(self, fragment: str) -> List[Book]:
        """Books whose author contains `fragment`, ignoring case."""
        q = (fragment or "").lower()
        return [b for b in list(self.books.values()) if q in b.author.lower()]

    def search_books(self, query: str) -> List[Book]:
        """
        Search books by title or author using a case-insensitive substring match.

        Each matching book appears once, in catalog order.
        """
        q = (query or "").lower()
        return [b for b in list(self.books.values())
                if q in b.title.lower() or q in b.author.lower()]

    def available_books(self) -> List[Book]:
        """
        Return the books that are not currently issued.

        Books appear in catalog order.
        """
        return [b for b in list(self.books.values()) if b.is_available()]

    def get_member_borrowed_books(self, member_id: str) -> List[Book]:
        """Books the member currently holds; empty for an unknown member."""
        member = self.members.get(member_id)
        return member.borrowed_books() if member is not None else []

    def get_borrowing_history(self, member_id: str) -> List[Book]:
        """Every book the member has borrowed, oldest first; empty for an unknown member."""
        member = self.members.get(member_id)
        return member.borrowing_history() if member is not None else []

    def members_with_borrowed_books(self) -> List[Dict]:
        """
        Return a list of members who currently have one or more borrowed books.

        Each entry contains the member ID, name and the list of borrowed book IDs.
        """
        members_list = []
        for member in list(self.members.values()):
            borrowed = [b.isbn for b in member.borrowed_books()]
            if not borrowed:
                continue
            members_list.append({"Member ID": member.member_id, "Name": member.name,
                                 "BorrowedBooks": borrowed})
        return members_list

    def most_popular_author(self) -> Optional[str]:
        """
        Compute the most frequently borrowed author from the borrow log.

        Ties go to the alphabetically first author. Returns None if nothing has
        been borrowed yet.
        """
        log = self.borrow_log_frame()
        borrows = log[log["action"] == "borrow"]
        if borrows.empty:
            return None
        books = self.export_report_books()[["Book ID", "Author"]]
        merged = borrows.merge(books, left_on="book_id", right_on="Book ID", how="left")
        merged["Author"] = merged["Author"].fillna("").astype(str).str.strip()
        counts = merged.groupby("Author").size().reset_index(name="count")
        counts = counts[counts["Author"] != ""]
        if counts.empty:
            return None
        top = counts.sort_values(["count", "Author"], ascending=[False, True]).iloc[0]
        return top["Author"]

    # ---------------- Reports ----------------
    def export_report_books(self) -> pd.DataFrame:
        """
        Produce a DataFrame suitable for reporting the books inventory.

        Availability is "Available" or "Issued"; Borrower is the holder's member ID.
        """
        return pd.DataFrame([b.to_record() for b in list(self.books.values())], columns=BOOK_COLUMNS)

    def export_report_members(self) -> pd.DataFrame:
        """
        Build a DataFrame summarizing members and their current borrowed books.

        BorrowedBooks is a comma separated list of ISBNs.
        """
        return pd.DataFrame([m.to_record() for m in list(self.members.values())], columns=MEMBER_COLUMNS)

    def borrow_log_frame(self) -> pd.DataFrame:
        """
        Return the borrow log as a DataFrame.

        One row per borrow, return or replace event, oldest first.
        """
        return pd.DataFrame(list(self.borrow_log), columns=LOG_COLUMNS)

    # ---------------- Persisting ----------------
    def save_state(self, directory: Union[str, pathlib.Path, None] = None) -> pathlib.Path:
        """
        Write books, members and the borrow log to CSV files in `directory`.

        The directory is created if needed. Returns the directory path.
        """
        out_dir = pathlib.Path(directory or DEFAULT_DATA_DIR)
        out_dir.mkdir(parents=True, exist_ok=True)

        with self.lock:
            books_df = self.export_report_books()
            members_df = self.export_report_members()
            log_df = self.borrow_log_frame()

        books_df.to_csv(out_dir / BOOKS_CSV, index=False, columns=["Book ID", "Title", "Author", "Year"])
        logger.info("Saved %d books to %s", len(books_df), out_dir / BOOKS_CSV)
        members_df.to_csv(out_dir / MEMBERS_CSV, index=False, columns=["Member ID", "Name", "Email", "Membership"])
        logger.info("Saved %d members to %s", len(members_df), out_dir / MEMBERS_CSV)
        log_df.to_csv(out_dir / BORROW_LOG_CSV, index=False, columns=LOG_COLUMNS)
        logger.info("Saved %d borrow-log records to %s", len(log_df), out_dir / BORROW_LOG_CSV)
        return out_dir

    @classmethod
    def load_state(cls, directory: Union[str, pathlib.Path, None] = None,
                   strict_returns: bool = False) -> "Library":
        """
        Build a Library from CSV files written by `save_state`.

        Books and members are re-created, then the borrow log is replayed so that
        availability, current holdings and borrowing histories match the saved run.
        Replace events in the log swap in fresh copies of a book or member, the way
        `add_book` and `register_member` did when the log was written.
        Missing files are treated as empty.

        Raises:
            CorruptStateError: a borrow log row cannot be replayed.
            UnknownMembershipTypeError: a member row names an unknown tier.
        """
        in_dir = pathlib.Path(directory or DEFAULT_DATA_DIR)
        lib = cls(strict_returns=strict_returns)

        books_df = _read_csv(in_dir / BOOKS_CSV, ["Book ID", "Title", "Author", "Year"])
        for _, row in books_df.iterrows():
            year = row["Year"].strip()
            lib.add_book(Book(row["Book ID"], row["Title"], row["Author"], int(year) if year else 0))

        members_df = _read_csv(in_dir / MEMBERS_CSV, ["Member ID", "Name", "Email", "Membership"])
        for _, row in members_df.iterrows():
            lib.new_member(row["Member ID"], row["Name"], row["Email"], row["Membership"])

        log_df = _read_csv(in_dir / BORROW_LOG_CSV, LOG_COLUMNS)
        with lib.lock:
            for idx, row in log_df.iterrows():
                action = row["action"].strip().lower()
                try:
                    if action == "borrow":
                        # the limit was checked against the tier at borrow time
                        lib._checkout(row["member_id"], row["book_id"], timestamp=row["timestamp"],
                                      enforce_limit=False)
                    elif action == "return":
                        lib._checkin(row["member_id"], row["book_id"], strict=False, timestamp=row["timestamp"])
                    elif action == "replace":
                        lib._replay_replace(row["member_id"], row["book_id"], row["timestamp"])
                    else:
                        raise CorruptStateError(f"borrow_log row {idx}: unknown action {row['action']!r}")
                except CorruptStateError:
                    raise
                except LibraryError as exc:
                    raise CorruptStateError(f"borrow_log row {idx}: {exc}") from exc
        logger.info("Loaded %d books, %d members and %d borrow-log entries from %s",
                    len(lib.books), len(lib.members), len(lib.borrow_log), in_dir)
        return lib


def _read_csv(path: pathlib.Path, columns: List[str]) -> pd.DataFrame:
    """
    Read a CSV as strings, or return an empty frame with `columns` if it is missing.

    Columns absent from the file are added as empty strings.
    """
    if not path.exists():
        logger.warning("CSV not found: %s (starting empty)", path)
        return pd.DataFrame(columns=columns)
    df = pd.read_csv(path, dtype=str, keep_default_na=False).fillna("")
    for col in columns:
        if col not in df.columns:
            df[col] = ""
    return df
