from library_system import BOOK_COLUMNS, LOG_COLUMNS, MEMBER_COLUMNS, Library


def test_search_by_title_is_case_insensitive(library):
    assert [b.title for b in library.search_by_title("clean")] == ["Clean Code"]
    assert [b.title for b in library.search_by_title("JAVA")] == ["Effective Java"]
    assert library.search_by_title("python") == []


def test_search_by_author(library):
    assert [b.isbn for b in library.search_by_author("bloch")] == ["978-0134685991"]
    assert library.search_by_author("Clean") == []


def test_empty_fragment_matches_everything(library):
    assert len(library.search_by_title("")) == 2
    assert len(library.search_by_author("")) == 2


def test_search_results_are_fresh_lists(library):
    first = library.search_by_title("c")
    first.clear()
    assert len(library.search_by_title("c")) == 2


def test_search_books_matches_title_or_author(library):
    library.new_book("978-3", "Refactoring", "Martin Fowler", 2018)
    assert [b.title for b in library.search_books("martin")] == ["Clean Code", "Refactoring"]


def test_available_books(library):
    library.borrow_book("M001", "978-0132350884")
    assert [b.isbn for b in library.available_books()] == ["978-0134685991"]


def test_export_report_books(library):
    library.borrow_book("M002", "978-0134685991")
    df = library.export_report_books()
    assert list(df.columns) == BOOK_COLUMNS
    row = df.set_index("Book ID").loc["978-0134685991"]
    assert row["Availability"] == "Issued"
    assert row["Borrower"] == "M002"
    assert df.set_index("Book ID").loc["978-0132350884", "Availability"] == "Available"


def test_export_report_members(library):
    library.borrow_book("M002", "978-0134685991")
    library.borrow_book("M002", "978-0132350884")
    df = library.export_report_members().set_index("Member ID")
    assert list(df.reset_index().columns) == MEMBER_COLUMNS
    assert df.loc["M002", "BorrowedCount"] == 2
    assert df.loc["M002", "BorrowedBooks"] == "978-0134685991,978-0132350884"
    assert df.loc["M001", "BorrowedCount"] == 0


def test_empty_reports_keep_columns():
    lib = Library()
    assert list(lib.export_report_books().columns) == BOOK_COLUMNS
    assert list(lib.export_report_members().columns) == MEMBER_COLUMNS
    assert list(lib.borrow_log_frame().columns) == LOG_COLUMNS
    assert lib.export_report_books().empty


def test_most_popular_author(library):
    assert library.most_popular_author() is None

    library.new_book("978-3", "Java Puzzlers", "Joshua Bloch", 2005)
    library.borrow_book("M002", "978-0134685991")
    library.borrow_book("M002", "978-3")
    library.borrow_book("M001", "978-0132350884")
    assert library.most_popular_author() == "Joshua Bloch"


def test_most_popular_author_tie_is_alphabetical(library):
    library.borrow_book("M001", "978-0134685991")
    library.borrow_book("M001", "978-0132350884")
    assert library.most_popular_author() == "Joshua Bloch"


def test_most_popular_author_counts_returned_books(library):
    for _ in range(2):
        library.borrow_book("M001", "978-0132350884")
        library.return_book("M001", "978-0132350884")
    library.borrow_book("M001", "978-0134685991")
    assert library.most_popular_author() == "Robert Martin"
