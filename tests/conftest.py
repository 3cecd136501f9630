import sys
import pathlib

# Add project root to sys.path so imports from repo root work when running the tests
sys.path.insert(0, str(pathlib.Path(__file__).resolve().parent.parent))

import pytest

from library_system import Library


@pytest.fixture
def library():
    lib = Library()
    lib.new_book("978-0134685991", "Effective Java", "Joshua Bloch", 2017)
    lib.new_book("978-0132350884", "Clean Code", "Robert Martin", 2008)
    lib.new_member("M001", "Alice", "alice@example.com", "Regular")
    lib.new_member("M002", "Bob", "bob@example.com", "Premium")
    return lib


def stock_books(lib, count, prefix="B"):
    """Add `count` numbered books and return their ISBNs."""
    ids = []
    for i in range(count):
        isbn = f"{prefix}{i:03d}"
        lib.new_book(isbn, f"Book {i}", f"Author {i % 3}", 2000 + i)
        ids.append(isbn)
    return ids


def assert_consistent(lib):
    """Every issued book is held by exactly its recorded borrower, and nobody is over limit."""
    holders = {}
    for member in lib.members.values():
        held = member.borrowed_books()
        assert len(held) <= member.membership_type.borrow_limit
        for book in held:
            holders.setdefault(book.isbn, []).append(member)
    for book in lib.books.values():
        if book.is_available():
            assert book.borrower is None
            assert book.isbn not in holders
        else:
            assert holders.get(book.isbn) == [book.borrower]
