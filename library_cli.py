#!/usr/bin/env python3
"""
library_cli.py

Command line front end for the library system.

Typical usage:
    library-cli --demo
    library-cli --data-dir library_data

With --demo a fixed borrow/return walkthrough is printed. Otherwise the saved state
in --data-dir (if any) is loaded and an interactive menu is started.
"""

from __future__ import annotations
import argparse
import logging
from typing import Iterable, List, Optional

from library_errors import LibraryError
from library_models import Book, MembershipType
from library_system import DEFAULT_DATA_DIR, Library


def input_prompt(prompt: str) -> str:
    """
    Wrapper around built-in input() that returns a stripped string and handles interrupts.

    Returns an empty string on EOF/KeyboardInterrupt.
    """
    try:
        return input(prompt).strip()
    except (EOFError, KeyboardInterrupt):
        print()
        return ""


def format_book(b: Book) -> str:
    """
    Render a book as a single menu line.

    Issued books show the member ID of their borrower.
    """
    status = "Available" if b.is_available() else f"Issued to {b.borrower.member_id}"
    return f"{b.isbn}: {b.title} | {b.author} | {b.publication_year} | {status}"


def print_books(books: Iterable[Book]) -> None:
    """Print one line per book using `format_book`."""
    for b in books:
        print(format_book(b))


def print_menu():
    """Print the interactive CLI menu to stdout."""
    print("\n--- City Library Management (CLI) ---")
    print("1. List all books")
    print("2. Search book by title/author")
    print("3. Show only available books")
    print("4. Register member")
    print("5. Add book")
    print("6. Borrow book")
    print("7. Return book")
    print("8. Show a member's borrowed books")
    print("9. Show a member's borrowing history")
    print("10. Show members with borrowed books")
    print("11. Show most popular author")
    print("12. Save state")
    print("0. Exit")


def cli_loop(lib: Library, data_dir: str = DEFAULT_DATA_DIR):
    """
    Interactive command-loop for the library system.

    Presents a text menu, accepts user input and invokes `Library` methods.
    """
    while True:
        print_menu()
        choice = input_prompt("Choose (0-12): ")
        try:
            if choice == "0":
                print("Exiting. You may save changes (option 12) before leaving.")
                break
            elif choice == "1":
                print(f"\nTotal books: {len(lib.books)}")
                print_books(lib.books.values())
            elif choice == "2":
                res = lib.search_books(input_prompt("Search query: "))
                print(f"Found {len(res)} result(s):")
                print_books(res)
            elif choice == "3":
                available = lib.available_books()
                print(f"Available books ({len(available)}):")
                print_books(available)
            elif choice == "4":
                mid = input_prompt("Member ID: ")
                name = input_prompt("Name: ")
                email = input_prompt("Email: ")
                tiers = "/".join(t.type_name for t in MembershipType)
                tier = input_prompt(f"Membership ({tiers}, default Regular): ") or "Regular"
                lib.new_member(mid, name, email, tier)
                print("Registered.")
            elif choice == "5":
                bid = input_prompt("ISBN: ")
                title = input_prompt("Title: ")
                author = input_prompt("Author: ")
                year_raw = input_prompt("Publication year: ")
                year = int(year_raw) if year_raw.isdigit() else 0
                lib.new_book(bid, title, author, year)
                print("Added.")
            elif choice == "6":
                mid = input_prompt("Member ID: ")
                bid = input_prompt("ISBN: ")
                book = lib.checkout(mid, bid)
                print(f"Book '{book.title}' issued to {mid}.")
            elif choice == "7":
                mid = input_prompt("Member ID: ")
                bid = input_prompt("ISBN: ")
                book = lib.checkin(mid, bid)
                print(f"Book '{book.title}' returned by {mid}.")
            elif choice == "8":
                mid = input_prompt("Member ID: ")
                borrowed = lib.get_member_borrowed_books(mid)
                print(f"{mid} holds {len(borrowed)} book(s):")
                print_books(borrowed)
            elif choice == "9":
                mid = input_prompt("Member ID: ")
                history = lib.get_borrowing_history(mid)
                print(f"{mid} has borrowed {len(history)} time(s):")
                for b in history:
                    print(f"{b.isbn}: {b.title}")
            elif choice == "10":
                members = lib.members_with_borrowed_books()
                print(f"\nMembers with borrowed books: {len(members)}")
                for m in members:
                    print(f"{m['Member ID']}: {m['Name']} -> {m['BorrowedBooks']}")
            elif choice == "11":
                print("Most popular author:", lib.most_popular_author() or "N/A")
            elif choice == "12":
                out = lib.save_state(data_dir)
                print(f"Saved state to {out}.")
            else:
                print("Unknown choice. Try again.")
        except LibraryError as exc:
            print(f"Failed: {exc}")


def demo_run() -> Library:
    """
    Build a small library, borrow one book and return it, printing each step.

    Returns the library so callers can inspect the final state.
    """
    lib = Library()
    lib.new_book("978-0134685991", "Effective Java", "Joshua Bloch", 2017)
    lib.new_book("978-0132350884", "Clean Code", "Robert Martin", 2008)
    print(f"Added {len(lib.books)} books")

    lib.new_member("M001", "Alice", "alice@example.com", MembershipType.REGULAR)
    lib.new_member("M002", "Bob", "bob@example.com", MembershipType.PREMIUM)
    print(f"Registered {len(lib.members)} members")

    ok = lib.borrow_book("M001", "978-0134685991")
    print("Borrow M001 -> 978-0134685991:", ok)
    print("M001 holds:", [b.title for b in lib.get_member_borrowed_books("M001")])

    ok = lib.return_book("M001", "978-0134685991")
    print("Return M001 -> 978-0134685991:", ok)
    print("M001 holds:", [b.title for b in lib.get_member_borrowed_books("M001")])
    print("M001 history:", [b.title for b in lib.get_borrowing_history("M001")])
    return lib


def interactive_run(data_dir: str, strict_returns: bool = False):
    """
    Load saved state from `data_dir`, run the CLI loop, and prompt to save state on exit.
    """
    lib = Library.load_state(data_dir, strict_returns=strict_returns)
    print("Welcome! Loaded library files (if present).")
    cli_loop(lib, data_dir)
    ans = input_prompt("Save state before exit? (y/n): ")
    if ans.lower().startswith("y"):
        lib.save_state(data_dir)
        print("Saved.")
    print("Goodbye.")


def build_parser() -> argparse.ArgumentParser:
    """
    Build the command line parser.

    Options cover the data folder, the demo walkthrough, strict returns and log level.
    """
    parser = argparse.ArgumentParser(description="City Library lending system")
    parser.add_argument("--data-dir", default=DEFAULT_DATA_DIR, help="Folder holding the library CSV files")
    parser.add_argument("--demo", action="store_true", help="Run the borrow/return walkthrough and exit")
    parser.add_argument("--strict-returns", action="store_true",
                        help="Only accept returns from the member who borrowed the book")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging verbosity")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Parse arguments, configure logging and run the demo or the interactive menu.

    Returns the process exit code.
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s: %(message)s")

    if args.demo:
        demo_run()
    else:
        interactive_run(args.data_dir, strict_returns=args.strict_returns)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
