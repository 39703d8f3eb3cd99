import logging
import sqlite3
from typing import List, Optional, Tuple

from libraryapp.book import Book, new_id
from libraryapp.database import get_db_connection, initialize_database
from libraryapp.exceptions import DuplicateBookError

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
# Largest page number accepted; keeps the OFFSET inside a SQLite INTEGER
MAX_PAGE_NUMBER = 2**31 - 1
SUGGESTION_LIMIT = 20

_BOOK_COLUMNS = "id, name, author, isbn, issue_year, number_of_pieces, created_at"

# Rows missing any required text are legacy leftovers and never shown
_WELL_FORMED = (
    "COALESCE(id, '') <> '' AND COALESCE(name, '') <> '' "
    "AND COALESCE(author, '') <> '' AND COALESCE(isbn, '') <> ''"
)


def clamp_page(page_number: int, page_size: int) -> Tuple[int, int]:
    """Normalize paging input: 1 <= page <= MAX_PAGE_NUMBER, 1 <= size <= MAX_PAGE_SIZE."""
    return max(1, min(MAX_PAGE_NUMBER, page_number)), max(1, min(MAX_PAGE_SIZE, page_size))


class Catalog:
    """Owns the Book records: adding titles, listing them and suggesting names."""

    def __init__(self, db_file: Optional[str] = None) -> None:
        self.db_file = db_file
        initialize_database(db_file)

    def _connect(self) -> sqlite3.Connection:
        return get_db_connection(self.db_file)

    # ------------------------- Core operations ------------------------- #
    def add_book(self, name: str, author: str, issue_year: int, isbn: str, number_of_pieces: int) -> Book:
        """Add a new title. The (name, author, isbn) triple must be unique.

        ISBN format is the caller's concern; it is stored as given.
        """
        book = Book(
            id=new_id(),
            name=name,
            author=author,
            isbn=isbn,
            issue_year=issue_year,
            number_of_pieces=number_of_pieces,
        )
        conn = self._connect()
        try:
            existing = conn.execute(
                "SELECT id FROM books WHERE name = ? AND author = ? AND isbn = ?",
                (name, author, isbn),
            ).fetchone()
            if existing:
                logger.warning(f"Attempt to create duplicate book: name={name!r}, author={author!r}, isbn={isbn!r}")
                raise DuplicateBookError(name, author, isbn)

            conn.execute(
                """
                INSERT INTO books (id, name, author, isbn, issue_year, number_of_pieces)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (book.id, book.name, book.author, book.isbn, book.issue_year, book.number_of_pieces),
            )
            conn.commit()
            row = conn.execute("SELECT created_at FROM books WHERE id = ?", (book.id,)).fetchone()
            if row:
                book.created_at = row[0]
        except sqlite3.IntegrityError as e:
            conn.rollback()
            if "UNIQUE" not in str(e):
                logger.error(f"Book insert rejected by the database: {e}")
                raise
            # Lost a race against an identical insert between the check and the write
            raise DuplicateBookError(name, author, isbn) from e
        finally:
            conn.close()

        logger.info(f"Book created: id={book.id}, name={book.name!r}, author={book.author!r}, isbn={book.isbn}")
        return book

    def get_book(self, book_id: str) -> Optional[Book]:
        conn = self._connect()
        try:
            row = conn.execute(f"SELECT {_BOOK_COLUMNS} FROM books WHERE id = ?", (book_id,)).fetchone()
            return Book.from_dict(dict(row)) if row else None
        finally:
            conn.close()

    def list_books(self, name: Optional[str] = None, author: Optional[str] = None, isbn: Optional[str] = None,
                   page_number: int = 1, page_size: int = 10) -> Tuple[List[Book], int, int, int]:
        """Filter, order and paginate the catalog.

        Filters are case-insensitive substring matches combined with AND;
        blank filters are ignored. Returns ``(items, total_count,
        page_number, page_size)`` with the paging values after clamping.
        """
        clauses = [_WELL_FORMED]
        params: list = []
        for column, value in (("name", name), ("author", author), ("isbn", isbn)):
            if value is not None and value.strip():
                clauses.append(f"instr(casefold({column}), casefold(?)) > 0")
                params.append(value)
        where = " AND ".join(clauses)

        page_number, page_size = clamp_page(page_number, page_size)
        skip = (page_number - 1) * page_size

        conn = self._connect()
        try:
            total_count = conn.execute(f"SELECT COUNT(*) FROM books WHERE {where}", params).fetchone()[0]
            rows = conn.execute(
                f"""
                SELECT {_BOOK_COLUMNS} FROM books
                WHERE {where}
                ORDER BY name, author
                LIMIT ? OFFSET ?
                """,
                params + [page_size, skip],
            ).fetchall()
        finally:
            conn.close()

        return [Book.from_dict(dict(row)) for row in rows], total_count, page_number, page_size

    def suggest_names(self, prefix: Optional[str]) -> List[str]:
        return self._suggest("name", prefix)

    def suggest_authors(self, prefix: Optional[str]) -> List[str]:
        return self._suggest("author", prefix)

    def _suggest(self, column: str, prefix: Optional[str]) -> List[str]:
        """Distinct values of ``column`` starting with ``prefix`` (any case), sorted, at most 20."""
        if prefix is None or not prefix.strip():
            return []
        conn = self._connect()
        try:
            rows = conn.execute(
                f"""
                SELECT DISTINCT {column} FROM books
                WHERE {_WELL_FORMED} AND instr(casefold({column}), casefold(?)) = 1
                ORDER BY {column}
                LIMIT ?
                """,
                (prefix, SUGGESTION_LIMIT),
            ).fetchall()
            return [row[0] for row in rows]
        finally:
            conn.close()
