import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from libraryapp.book import Book, BookLoan, format_timestamp, new_id, utcnow
from libraryapp.config import settings
from libraryapp.database import get_db_connection, initialize_database
from libraryapp.exceptions import BookNotFoundError, NoActiveLoanError, NoCapacityError

logger = logging.getLogger(__name__)

# Stay well below SQLite's default bound-parameter limit for IN (...) lists
_BATCH_CHUNK = 500

_LOAN_COLUMNS = "id, book_id, user_id, borrowed_date, returned_date"


@dataclass(frozen=True)
class LoanCounts:
    """Borrow state of one book as seen by one user."""

    book_id: str
    user_active_loans: int
    total_active_loans: int
    number_of_pieces: int

    @property
    def available_count(self) -> int:
        return max(0, self.number_of_pieces - self.total_active_loans)

    @property
    def is_borrowed_by_user(self) -> bool:
        return self.user_active_loans > 0


def _chunks(items: List[str], size: int) -> Iterable[List[str]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class LoanLedger:
    """Owns the BookLoan records and the borrow / return policy.

    Availability is never stored; it is recomputed from the book's copy
    count and the number of loans whose ``returned_date`` is NULL.

    ``atomic_borrow`` selects how the capacity check and the insert are
    combined. When False (the default) they are two independent statements,
    so two borrowers racing for the last copy can both succeed. When True both
    run inside ``BEGIN IMMEDIATE`` and concurrent borrowers are
    serialised on the SQLite write lock.
    """

    def __init__(self, db_file: Optional[str] = None, atomic_borrow: Optional[bool] = None,
                 clock: Optional[Callable[[], datetime]] = None, timeout: Optional[float] = None) -> None:
        self.db_file = db_file
        self.timeout = timeout
        self.atomic_borrow = settings.atomic_borrow if atomic_borrow is None else atomic_borrow
        self.clock = clock or utcnow
        initialize_database(db_file)

    def _connect(self) -> sqlite3.Connection:
        return get_db_connection(self.db_file, timeout=self.timeout)

    # ------------------------- Queries on one connection ------------------------- #
    @staticmethod
    def _find_book(conn: sqlite3.Connection, book_id: str) -> Optional[Book]:
        row = conn.execute(
            "SELECT id, name, author, isbn, issue_year, number_of_pieces, created_at FROM books WHERE id = ?",
            (book_id,),
        ).fetchone()
        return Book.from_dict(dict(row)) if row else None

    @staticmethod
    def _count_active(conn: sqlite3.Connection, book_id: str, user_id: Optional[int] = None) -> int:
        if user_id is None:
            row = conn.execute(
                "SELECT COUNT(*) FROM book_loans WHERE book_id = ? AND returned_date IS NULL",
                (book_id,),
            ).fetchone()
        else:
            row = conn.execute(
                "SELECT COUNT(*) FROM book_loans WHERE book_id = ? AND user_id = ? AND returned_date IS NULL",
                (book_id, user_id),
            ).fetchone()
        return row[0]

    # ------------------------- Borrow / return ------------------------- #
    def borrow(self, book_id: str, user_id: int) -> BookLoan:
        """Lend one copy of ``book_id`` to ``user_id``.

        Raises BookNotFoundError for an unknown book and NoCapacityError
        when every copy is out. A user may hold several copies of the same
        title at once.
        """
        conn = self._connect()
        try:
            if self.atomic_borrow:
                conn.execute("BEGIN IMMEDIATE")

            book = self._find_book(conn, book_id)
            if book is None:
                logger.warning(f"Attempt to borrow non-existent book: book_id={book_id}, user_id={user_id}")
                raise BookNotFoundError(book_id)

            active = self._count_active(conn, book_id)
            if book.number_of_pieces - active <= 0:
                logger.warning(
                    f"Attempt to borrow book with no available copies: book_id={book_id}, "
                    f"user_id={user_id}, active={active}, total={book.number_of_pieces}"
                )
                raise NoCapacityError(book_id, active, book.number_of_pieces)

            loan = BookLoan(id=new_id(), book_id=book_id, user_id=user_id, borrowed_date=self.clock())
            conn.execute(
                "INSERT INTO book_loans (id, book_id, user_id, borrowed_date, returned_date) VALUES (?, ?, ?, ?, NULL)",
                (loan.id, loan.book_id, loan.user_id, format_timestamp(loan.borrowed_date)),
            )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

        logger.info(f"User {user_id} borrowed book {book_id} - loan_id={loan.id}")
        return loan

    def return_book(self, book_id: str, user_id: int) -> BookLoan:
        """Close the user's oldest active loan for ``book_id``.

        Raises NoActiveLoanError when the user holds no copy, and
        BookNotFoundError when the loan points at a book that no longer
        exists (a referential integrity problem, not a user error).
        """
        conn = self._connect()
        try:
            row = conn.execute(
                f"""
                SELECT {_LOAN_COLUMNS} FROM book_loans
                WHERE book_id = ? AND user_id = ? AND returned_date IS NULL
                ORDER BY borrowed_date, rowid
                LIMIT 1
                """,
                (book_id, user_id),
            ).fetchone()
            if row is None:
                logger.warning(f"Attempt to return book that user hasn't borrowed: book_id={book_id}, user_id={user_id}")
                raise NoActiveLoanError(book_id, user_id)

            if self._find_book(conn, book_id) is None:
                logger.error(f"Book not found for return operation: book_id={book_id}, user_id={user_id}")
                raise BookNotFoundError(book_id)

            loan = BookLoan.from_dict(dict(row))
            loan.mark_returned(self.clock())
            # The returned_date IS NULL guard keeps a concurrent return from closing the same loan twice
            cursor = conn.execute(
                "UPDATE book_loans SET returned_date = ? WHERE id = ? AND returned_date IS NULL",
                (format_timestamp(loan.returned_date), loan.id),
            )
            if cursor.rowcount == 0:
                raise NoActiveLoanError(book_id, user_id)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

        logger.info(f"User {user_id} returned book {book_id} - loan_id={loan.id}")
        return loan

    # ------------------------- Status ------------------------- #
    def status(self, book_id: str, user_id: int) -> LoanCounts:
        conn = self._connect()
        try:
            book = self._find_book(conn, book_id)
            if book is None:
                raise BookNotFoundError(book_id)
            return LoanCounts(
                book_id=book_id,
                user_active_loans=self._count_active(conn, book_id, user_id),
                total_active_loans=self._count_active(conn, book_id),
                number_of_pieces=book.number_of_pieces,
            )
        finally:
            conn.close()

    def batch_status(self, book_ids: Optional[Iterable[str]], user_id: int) -> Dict[str, LoanCounts]:
        """Status for many books in one pass. Unknown ids are left out of the result."""
        if not book_ids:
            return {}
        ids = list(dict.fromkeys(book_ids))
        if not ids:
            return {}

        pieces: Dict[str, int] = {}
        totals: Dict[str, int] = {}
        mine: Dict[str, int] = {}
        conn = self._connect()
        try:
            for chunk in _chunks(ids, _BATCH_CHUNK):
                marks = ", ".join("?" for _ in chunk)
                for row in conn.execute(f"SELECT id, number_of_pieces FROM books WHERE id IN ({marks})", chunk):
                    pieces[row["id"]] = row["number_of_pieces"]
                rows = conn.execute(
                    f"""
                    SELECT book_id,
                           COUNT(*) AS total_count,
                           SUM(CASE WHEN user_id = ? THEN 1 ELSE 0 END) AS user_count
                    FROM book_loans
                    WHERE book_id IN ({marks}) AND returned_date IS NULL
                    GROUP BY book_id
                    """,
                    [user_id] + chunk,
                )
                for row in rows:
                    totals[row["book_id"]] = row["total_count"]
                    mine[row["book_id"]] = row["user_count"] or 0
        finally:
            conn.close()

        return {
            book_id: LoanCounts(
                book_id=book_id,
                user_active_loans=mine.get(book_id, 0),
                total_active_loans=totals.get(book_id, 0),
                number_of_pieces=pieces[book_id],
            )
            for book_id in ids
            if book_id in pieces
        }

    def available_count(self, book_id: str) -> int:
        conn = self._connect()
        try:
            book = self._find_book(conn, book_id)
            if book is None:
                raise BookNotFoundError(book_id)
            return max(0, book.number_of_pieces - self._count_active(conn, book_id))
        finally:
            conn.close()

    def user_active_loans(self, user_id: int) -> List[Tuple[BookLoan, Book]]:
        """Active loans of a user joined with their books, oldest borrowing first."""
        conn = self._connect()
        try:
            rows = conn.execute(
                """
                SELECT l.id, l.book_id, l.user_id, l.borrowed_date, l.returned_date,
                       b.name, b.author, b.isbn, b.issue_year, b.number_of_pieces, b.created_at
                FROM book_loans l
                JOIN books b ON b.id = l.book_id
                WHERE l.user_id = ? AND l.returned_date IS NULL
                ORDER BY l.borrowed_date, l.rowid
                """,
                (user_id,),
            ).fetchall()
        finally:
            conn.close()

        result = []
        for row in rows:
            data = dict(row)
            loan = BookLoan.from_dict(data)
            book = Book.from_dict({**data, "id": data["book_id"]})
            result.append((loan, book))
        logger.info(f"Retrieved {len(result)} borrowed books for user {user_id}")
        return result
