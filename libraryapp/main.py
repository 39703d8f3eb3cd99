import logging
import subprocess
import sys
from typing import List, NoReturn, Optional

import typer
from pydantic import ValidationError

from libraryapp.catalog import Catalog
from libraryapp.config import settings
from libraryapp.exceptions import LibraryError
from libraryapp.ledger import LoanLedger
from libraryapp.queries import LibraryQueries
from libraryapp.schemas import AddBookRequest
from libraryapp.seed import bootstrap
from libraryapp.ui_helpers import (
    print_book_page,
    print_borrowed_books,
    print_lines,
    print_status,
    set_output_mode,
)
from libraryapp.validators import ISBNValidator

logger = logging.getLogger(__name__)

# --- Typer CLI application ---
app = typer.Typer(help="Library catalog and lending CLI")


def _queries() -> LibraryQueries:
    return LibraryQueries(Catalog(settings.database_file), LoanLedger(settings.database_file))


def _fail(message: str) -> NoReturn:
    print(f"Error: {message}")
    raise typer.Exit(code=1)


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
    db: Optional[str] = typer.Option(None, "--db", help="SQLite database file (overrides LIBRARY_DB_FILE)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at the configured LOG_LEVEL instead of WARNING"),
):
    """Global options for the CLI (output mode, database file, logging)."""
    logging.basicConfig(level=settings.log_level if verbose else logging.WARNING)
    if output:
        set_output_mode(output)
    if db:
        settings.database_file = db


@app.command("list")
def cli_list(
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Filter by name (substring, any case)"),
    author: Optional[str] = typer.Option(None, "--author", "-a", help="Filter by author (substring, any case)"),
    isbn: Optional[str] = typer.Option(None, "--isbn", help="Filter by ISBN (substring)"),
    page: int = typer.Option(1, "--page", "-p", help="Page number"),
    page_size: int = typer.Option(settings.default_page_size, "--page-size", "-s", help="Books per page (max 100)"),
):
    """List catalog books, ordered by name then author."""
    print_book_page(_queries().list_books(name=name, author=author, isbn=isbn, page_number=page, page_size=page_size))


@app.command("add")
def cli_add(
    name: str,
    author: str,
    issue_year: int,
    isbn: str,
    pieces: int = typer.Option(1, "--pieces", help="Number of physical copies"),
):
    """Add a book to the catalog."""
    try:
        request = AddBookRequest(name=name, author=author, issue_year=issue_year, isbn=isbn, number_of_pieces=pieces)
    except ValidationError as e:
        for err in e.errors():
            field = ".".join(str(part) for part in err["loc"])
            print(f"Invalid {field}: {err['msg']}")
        raise typer.Exit(code=1)
    try:
        book = _queries().add_book(request)
    except LibraryError as e:
        _fail(str(e))
    print(f"Successfully added: {book.name} by {book.author} (id {book.id})")


@app.command("borrow")
def cli_borrow(
    book_id: str,
    user: int = typer.Option(..., "--user", "-u", help="Borrowing user id"),
):
    """Borrow one copy of a book."""
    try:
        result = _queries().borrow(book_id, user)
    except LibraryError as e:
        _fail(str(e))
    print(f"{result.message}. Loan {result.loan_id} at {result.borrowed_date.isoformat()}")


@app.command("return")
def cli_return(
    book_id: str,
    user: int = typer.Option(..., "--user", "-u", help="Returning user id"),
):
    """Return the oldest copy of a book the user holds."""
    try:
        result = _queries().return_book(book_id, user)
    except LibraryError as e:
        _fail(str(e))
    print(result.message)


@app.command("status")
def cli_status(
    book_id: str,
    user: int = typer.Option(..., "--user", "-u", help="User id"),
):
    """Show availability of a book and the user's loans of it."""
    try:
        status = _queries().status(book_id, user)
    except LibraryError as e:
        _fail(str(e))
    print_status(status)


@app.command("batch-status")
def cli_batch_status(
    book_ids: List[str],
    user: int = typer.Option(..., "--user", "-u", help="User id"),
):
    """Show availability of several books; unknown ids are skipped."""
    statuses = _queries().batch_status(book_ids, user)
    for status in statuses.values():
        print(f"{status.book_id}: available={status.available_count}, yours={status.active_loan_count}")


@app.command("my-books")
def cli_my_books(user: int = typer.Option(..., "--user", "-u", help="User id")):
    """List the user's active loans, oldest first."""
    print_borrowed_books(_queries().borrowed_books(user))


@app.command("suggest-names")
def cli_suggest_names(prefix: str):
    """Suggest book names starting with a prefix."""
    print_lines(_queries().suggest_names(prefix), "No suggestions.")


@app.command("suggest-authors")
def cli_suggest_authors(prefix: str):
    """Suggest authors starting with a prefix."""
    print_lines(_queries().suggest_authors(prefix), "No suggestions.")


@app.command("validate-isbn")
def cli_validate_isbn(isbn: str):
    """Check an ISBN-13 checksum."""
    if ISBNValidator.validate_isbn13(isbn):
        print(f"{isbn} is a valid ISBN-13.")
    else:
        print(f"{isbn} is not a valid ISBN-13.")
        raise typer.Exit(code=1)


@app.command("generate-isbn")
def cli_generate_isbn(body: str):
    """Complete a 12-digit body with its check digit."""
    try:
        print(ISBNValidator.generate_isbn13(body))
    except ValueError as e:
        _fail(str(e))


@app.command("seed")
def cli_seed(with_books: bool = typer.Option(True, "--books/--no-books", help="Also seed the sample catalog")):
    """Create the schema and seed users and the sample catalog (idempotent)."""
    bootstrap(settings.database_file, with_books=with_books)
    print(f"Database ready at {settings.database_file}")


@app.command("serve")
def cli_serve(reload: bool = typer.Option(False, "--reload", help="Restart the server on code changes")):
    """Start the HTTP API with uvicorn."""
    host = settings.api_host
    port = int(settings.api_port)
    print(f"Starting API on http://{host}:{port}/")
    args = [
        sys.executable,
        "-m", "uvicorn",
        "libraryapp.api:app",
        "--host", host,
        "--port", str(port),
    ]
    if reload:
        args.append("--reload")
    subprocess.run(args)


if __name__ == "__main__":
    app()
