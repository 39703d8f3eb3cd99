from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone

from libraryapp.exceptions import LoanAlreadyReturnedError


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    return value.isoformat(timespec="microseconds")


def _parse_timestamp(value: str | datetime | None) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


class Book:
    """A catalog entry: one title with a fixed number of physical copies."""

    def __init__(self, name: str, author: str, isbn: str, issue_year: int, number_of_pieces: int,
                 id: str | None = None, created_at: str | None = None) -> None:
        self.id = id or new_id()
        self.name = name
        self.author = author
        self.isbn = isbn
        self.issue_year = issue_year
        self.number_of_pieces = number_of_pieces
        self.created_at = created_at

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.name} by {self.author} (ISBN: {self.isbn})"

    def __repr__(self) -> str:  # pragma: no cover
        return f"Book(id={self.id!r}, name={self.name!r}, author={self.author!r})"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "author": self.author,
            "issue_year": self.issue_year,
            "isbn": self.isbn,
            "number_of_pieces": self.number_of_pieces,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        return Book(
            id=data["id"],
            name=data["name"],
            author=data["author"],
            isbn=data["isbn"],
            issue_year=int(data["issue_year"]),
            number_of_pieces=int(data["number_of_pieces"]),
            created_at=data.get("created_at"),
        )


class LoanStatus(str, enum.Enum):
    ACTIVE = "active"
    RETURNED = "returned"


class BookLoan:
    """One physical borrowing of a book by a user.

    A loan starts ACTIVE and moves to RETURNED exactly once. The state is
    stored as a nullable ``returned_date``; ``status`` derives it.
    """

    def __init__(self, book_id: str, user_id: int, borrowed_date: datetime,
                 returned_date: datetime | None = None, id: str | None = None) -> None:
        self.id = id or new_id()
        self.book_id = book_id
        self.user_id = user_id
        self.borrowed_date = borrowed_date
        self.returned_date = returned_date

    @property
    def status(self) -> LoanStatus:
        return LoanStatus.ACTIVE if self.returned_date is None else LoanStatus.RETURNED

    @property
    def is_active(self) -> bool:
        return self.status is LoanStatus.ACTIVE

    def mark_returned(self, at: datetime) -> None:
        if not self.is_active:
            raise LoanAlreadyReturnedError(self.id)
        self.returned_date = at

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "book_id": self.book_id,
            "user_id": self.user_id,
            "borrowed_date": format_timestamp(self.borrowed_date),
            "returned_date": format_timestamp(self.returned_date) if self.returned_date else None,
            "status": self.status.value,
        }

    @staticmethod
    def from_dict(data: dict) -> "BookLoan":
        return BookLoan(
            id=data["id"],
            book_id=data["book_id"],
            user_id=int(data["user_id"]),
            borrowed_date=_parse_timestamp(data["borrowed_date"]),
            returned_date=_parse_timestamp(data.get("returned_date")),
        )
