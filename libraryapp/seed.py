"""Idempotent bootstrap of a fresh database.

The composition root (API startup or the ``seed`` CLI command) calls
``bootstrap`` once; each step does nothing when its table already has rows.
"""
import logging
from typing import Optional

from libraryapp.config import settings
from libraryapp.database import get_db_connection, initialize_database
from libraryapp.validators import ISBNValidator

logger = logging.getLogger(__name__)

# (id, name, author, issue_year, 12-digit ISBN body, number_of_pieces)
SEED_BOOKS = [
    ("a1b2c3d4-e5f6-4789-a012-b3c4d5e6f7a8", "2001: Vesmírna Odysea", "Arthur C. Clarke", 2010, "978802490001", 15),
    ("b2c3d4e5-f6a7-4890-b123-c4d5e6f7a8b9", "Vládca Kúzliel", "Isaac Asimov", 2012, "978802490002", 12),
    ("c3d4e5f6-a7b8-4901-c234-d5e6f7a8b9c0", "Fundamenta Galaktiky", "Isaac Asimov", 2011, "978802490003", 10),
    ("d4e5f6a7-b8c9-4012-d345-e6f7a8b9c0d1", "Duna", "Frank Herbert", 2015, "978802490004", 18),
    ("e5f6a7b8-c9d0-4123-e456-f7a8b9c0d1e2", "Neuromancer", "William Gibson", 2013, "978802490005", 14),
    ("a7b8c9d0-e1f2-4345-a678-b9c0d1e2f3a4", "Hyperión", "Dan Simmons", 2016, "978802490007", 11),
    ("e1f2a3b4-c5d6-4789-e012-f3a4b5c6d7e8", "Solaris", "Stanisław Lem", 2010, "978802490011", 20),
    ("d6e7f8a9-b0c1-4234-d567-e8f9a0b1c2d3", "Hobit", "J.R.R. Tolkien", 2009, "978802490016", 25),
    ("e7f8a9b0-c1d2-4345-e678-f9a0b1c2d3e4", "Spoločenstvo Prsteňa", "J.R.R. Tolkien", 2009, "978802490017", 22),
    ("b0c1d2e3-f4a5-4678-b901-c2d3e4f5a6b7", "Silmarillion", "J.R.R. Tolkien", 2010, "978802490020", 18),
    ("c1d2e3f4-a5b6-4789-c012-d3e4f5a6b7c8", "Kamenný Mlyn", "J.K. Rowling", 2008, "978802490021", 30),
    ("d8e9f0a1-b2c3-4456-d789-e0f1a2b3c4d5", "Hra Prestolov", "George R.R. Martin", 2011, "978802490028", 19),
    ("4a3b2c1d-0e9f-8a76-4321-098765a4321f", "Mort", "Terry Pratchett", 2010, "978802490036", 19),
    ("6c5b4a39-2817-0c98-6543-210987cb6789", "Posledné Prianie", "Andrzej Sapkowski", 2010, "978802490044", 19),
    ("17060504-0302-5c43-1098-76543212345d", "Zlatý Kompas", "Philip Pullman", 2010, "978802490049", 21),
    ("03020100-0908-1c09-7654-32109878901a", "Imaginárne Živé", "China Miéville", 2013, "978802490053", 13),
]

# (id, login, user_type); the API user receives settings.api_key
SEED_USERS = [
    (1, "User1", "user"),
    (2, "User2", "user"),
    (3, "API1", "api"),
    (4, "admin1", "user"),
]

# (id, value)
SEED_STATUSES = [(1, "OK")]


def seed_books(db_file: Optional[str] = None) -> int:
    """Insert the fixed catalog when the books table is empty. Returns rows inserted."""
    conn = get_db_connection(db_file)
    try:
        if conn.execute("SELECT COUNT(*) FROM books").fetchone()[0] > 0:
            logger.info("Books already exist in database. Skipping seed.")
            return 0
        rows = [
            (book_id, name, author, ISBNValidator.generate_isbn13(body), year, pieces)
            for book_id, name, author, year, body, pieces in SEED_BOOKS
        ]
        conn.executemany(
            "INSERT INTO books (id, name, author, isbn, issue_year, number_of_pieces) VALUES (?, ?, ?, ?, ?, ?)",
            rows,
        )
        conn.commit()
    finally:
        conn.close()
    logger.info(f"Seeded {len(rows)} books successfully")
    return len(rows)


def seed_users(db_file: Optional[str] = None, api_key: Optional[str] = None) -> int:
    """Insert the fixed user list when the users table is empty. Returns rows inserted."""
    api_key = api_key or settings.api_key
    conn = get_db_connection(db_file)
    try:
        if conn.execute("SELECT COUNT(*) FROM users").fetchone()[0] > 0:
            logger.info("Users already exist in database. Skipping seed.")
            return 0
        rows = [
            (user_id, login, user_type, api_key if user_type == "api" else None)
            for user_id, login, user_type in SEED_USERS
        ]
        conn.executemany("INSERT INTO users (id, login, user_type, api_key) VALUES (?, ?, ?, ?)", rows)
        conn.commit()
    finally:
        conn.close()
    logger.info(f"Seeded {len(rows)} users successfully")
    return len(rows)


def seed_statuses(db_file: Optional[str] = None) -> int:
    """Insert the initial status row when the statuses table is empty. Returns rows inserted."""
    conn = get_db_connection(db_file)
    try:
        if conn.execute("SELECT COUNT(*) FROM statuses").fetchone()[0] > 0:
            return 0
        conn.executemany("INSERT INTO statuses (id, value) VALUES (?, ?)", SEED_STATUSES)
        conn.commit()
    finally:
        conn.close()
    logger.info(f"Seeded {len(SEED_STATUSES)} statuses successfully")
    return len(SEED_STATUSES)


def bootstrap(db_file: Optional[str] = None, api_key: Optional[str] = None, with_books: bool = True) -> None:
    """Create the schema and seed statuses, users and (unless disabled) the catalog."""
    initialize_database(db_file)
    seed_statuses(db_file)
    seed_users(db_file, api_key=api_key)
    if with_books:
        seed_books(db_file)
