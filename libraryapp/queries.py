from typing import Dict, Iterable, List, Optional

from libraryapp.book import Book
from libraryapp.catalog import Catalog
from libraryapp.ledger import LoanCounts, LoanLedger
from libraryapp.schemas import (
    AddBookRequest,
    AvailableCount,
    BookResponse,
    BorrowedBook,
    BorrowResponse,
    BorrowStatus,
    MessageResponse,
    PaginatedBooks,
)

BORROW_MESSAGE = "Book borrowed successfully"
RETURN_MESSAGE = "Book returned successfully"


def book_response(book: Book) -> BookResponse:
    return BookResponse(**book.to_dict())


def borrow_status(counts: LoanCounts) -> BorrowStatus:
    return BorrowStatus(
        book_id=counts.book_id,
        is_borrowed_by_user=counts.is_borrowed_by_user,
        active_loan_count=counts.user_active_loans,
        available_count=counts.available_count,
    )


class LibraryQueries:
    """Shapes catalog and ledger results into the objects handed to callers.

    Every rule lives in Catalog or LoanLedger; this layer only assembles.
    """

    def __init__(self, catalog: Catalog, ledger: LoanLedger) -> None:
        self.catalog = catalog
        self.ledger = ledger

    def list_books(self, name: Optional[str] = None, author: Optional[str] = None, isbn: Optional[str] = None,
                   page_number: int = 1, page_size: int = 10) -> PaginatedBooks:
        items, total, page_number, page_size = self.catalog.list_books(
            name=name, author=author, isbn=isbn, page_number=page_number, page_size=page_size
        )
        return PaginatedBooks(
            items=[book_response(b) for b in items],
            total_count=total,
            page_number=page_number,
            page_size=page_size,
        )

    def add_book(self, request: AddBookRequest) -> BookResponse:
        book = self.catalog.add_book(
            name=request.name,
            author=request.author,
            issue_year=request.issue_year,
            isbn=request.isbn,
            number_of_pieces=request.number_of_pieces,
        )
        return book_response(book)

    def borrow(self, book_id: str, user_id: int) -> BorrowResponse:
        loan = self.ledger.borrow(book_id, user_id)
        return BorrowResponse(
            loan_id=loan.id,
            book_id=loan.book_id,
            user_id=loan.user_id,
            borrowed_date=loan.borrowed_date,
            message=BORROW_MESSAGE,
        )

    def return_book(self, book_id: str, user_id: int) -> MessageResponse:
        self.ledger.return_book(book_id, user_id)
        return MessageResponse(message=RETURN_MESSAGE)

    def status(self, book_id: str, user_id: int) -> BorrowStatus:
        return borrow_status(self.ledger.status(book_id, user_id))

    def batch_status(self, book_ids: Optional[Iterable[str]], user_id: int) -> Dict[str, BorrowStatus]:
        return {book_id: borrow_status(c) for book_id, c in self.ledger.batch_status(book_ids, user_id).items()}

    def available_count(self, book_id: str) -> AvailableCount:
        return AvailableCount(book_id=book_id, available_count=self.ledger.available_count(book_id))

    def borrowed_books(self, user_id: int) -> List[BorrowedBook]:
        return [
            BorrowedBook(
                loan_id=loan.id,
                book_id=loan.book_id,
                name=book.name,
                author=book.author,
                issue_year=book.issue_year,
                isbn=book.isbn,
                borrowed_date=loan.borrowed_date,
            )
            for loan, book in self.ledger.user_active_loans(user_id)
        ]

    def suggest_names(self, prefix: Optional[str]) -> List[str]:
        return self.catalog.suggest_names(prefix)

    def suggest_authors(self, prefix: Optional[str]) -> List[str]:
        return self.catalog.suggest_authors(prefix)
