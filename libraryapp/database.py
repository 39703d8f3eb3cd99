import logging
import sqlite3
from typing import Optional

from libraryapp.config import settings

logger = logging.getLogger(__name__)


def _casefold(value: Optional[str]) -> Optional[str]:
    return value.casefold() if value is not None else None


def get_db_connection(db_file: Optional[str] = None, timeout: Optional[float] = None) -> sqlite3.Connection:
    """Open a connection to the SQLite database.

    Rows come back as ``sqlite3.Row``. A ``casefold`` SQL function is
    registered so case-insensitive filters also work for non-ASCII text,
    which the built-in LIKE and lower() do not handle.
    """
    conn = sqlite3.connect(
        db_file or settings.database_file,
        timeout=settings.database_timeout if timeout is None else timeout,
    )
    conn.row_factory = sqlite3.Row
    conn.create_function("casefold", 1, _casefold, deterministic=True)
    return conn


def create_tables(db_file: Optional[str] = None) -> None:
    """Create the tables and indexes if they do not exist yet."""
    conn = get_db_connection(db_file)
    try:
        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS books (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                author TEXT NOT NULL,
                isbn TEXT NOT NULL,
                issue_year INTEGER NOT NULL,
                number_of_pieces INTEGER NOT NULL DEFAULT 0 CHECK(number_of_pieces >= 0),
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (name, author, isbn)
            )
        """)

        # returned_date NULL means the loan is still active
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS book_loans (
                id TEXT PRIMARY KEY,
                book_id TEXT NOT NULL REFERENCES books(id),
                user_id INTEGER NOT NULL,
                borrowed_date TEXT NOT NULL,
                returned_date TEXT
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY,
                login TEXT UNIQUE NOT NULL,
                user_type TEXT NOT NULL DEFAULT 'user' CHECK(user_type IN ('user', 'api')),
                api_key TEXT
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS statuses (
                id INTEGER PRIMARY KEY,
                value TEXT NOT NULL CHECK(length(value) <= 200)
            )
        """)

        cursor.execute("CREATE INDEX IF NOT EXISTS idx_books_name_author ON books(name, author)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_books_author ON books(author)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_book_loans_book_active ON book_loans(book_id, returned_date)")
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_book_loans_user_active ON book_loans(user_id, returned_date, borrowed_date)"
        )
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_users_api_key ON users(api_key)")

        conn.commit()
    finally:
        conn.close()


def initialize_database(db_file: Optional[str] = None) -> None:
    """Initialize the database schema. Seeding is a separate step (see seed.bootstrap)."""
    create_tables(db_file)
    logger.debug(f"Database schema ready at {db_file or settings.database_file}")
