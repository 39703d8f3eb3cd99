import json
import os
from typing import List

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from libraryapp.schemas import BorrowedBook, BorrowStatus, PaginatedBooks, WireModel

# Environment variable controlling the CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def _dump(model: WireModel) -> dict:
    return model.model_dump(mode="json", by_alias=True)


def print_book_page(page: PaginatedBooks) -> None:
    """Print one page of the catalog.
    - plain: 'id - Name by Author (ISBN, year) [pieces]' lines, then a page footer
    - json: the wire envelope
    - rich: a table
    """
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps(_dump(page), ensure_ascii=False))
        return

    if not page.items:
        print("No books in library.")
        return

    footer = f"Page {page.page_number} ({page.page_size} per page), {page.total_count} books total"
    if mode == "rich":
        table = Table(title="📚 Books", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Name", style="white")
        table.add_column("Author", style="white")
        table.add_column("ISBN", style="magenta", no_wrap=True)
        table.add_column("Year", justify="right")
        table.add_column("Pieces", justify="right")
        for b in page.items:
            table.add_row(b.id, b.name, b.author, b.isbn, str(b.issue_year), str(b.number_of_pieces))
        _console.print(table)
        _console.print(f"[dim]{footer}[/]")
    else:
        for b in page.items:
            print(f"{b.id} - {b.name} by {b.author} ({b.isbn}, {b.issue_year}) [{b.number_of_pieces}]")
        print(footer)


def print_status(status: BorrowStatus) -> None:
    mode = get_output_mode()
    if mode == "json":
        print(json.dumps(_dump(status), ensure_ascii=False))
    elif mode == "rich":
        content = (
            f"[bold]Borrowed by you:[/] {'yes' if status.is_borrowed_by_user else 'no'}\n"
            f"[bold]Your active loans:[/] {status.active_loan_count}\n"
            f"[bold]Available copies:[/] {status.available_count}"
        )
        _console.print(Panel.fit(content, title=f"📖 {status.book_id}", border_style="blue"))
    else:
        print(f"Borrowed by you: {'yes' if status.is_borrowed_by_user else 'no'}")
        print(f"Your active loans: {status.active_loan_count}")
        print(f"Available copies: {status.available_count}")


def print_borrowed_books(loans: List[BorrowedBook]) -> None:
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps([_dump(loan) for loan in loans], ensure_ascii=False))
        return

    if not loans:
        print("No borrowed books.")
        return

    if mode == "rich":
        table = Table(title="📚 Borrowed books", header_style="bold cyan")
        table.add_column("Loan", style="dim", no_wrap=True)
        table.add_column("Name")
        table.add_column("Author")
        table.add_column("Borrowed", no_wrap=True)
        for loan in loans:
            table.add_row(loan.loan_id, loan.name, loan.author, loan.borrowed_date.isoformat())
        _console.print(table)
    else:
        for loan in loans:
            print(f"{loan.borrowed_date.isoformat()} - {loan.name} by {loan.author} (book {loan.book_id})")


def print_lines(values: List[str], empty_message: str) -> None:
    mode = get_output_mode()
    if mode == "json":
        print(json.dumps(values, ensure_ascii=False))
    elif not values:
        print(empty_message)
    else:
        for value in values:
            print(value)
