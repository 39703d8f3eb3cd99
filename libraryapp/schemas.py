from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from libraryapp.validators import ISBNValidator


class WireModel(BaseModel):
    """Base for every wire shape: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Requests ---
class AddBookRequest(WireModel):
    name: str = Field(..., max_length=300)
    author: str = Field(..., max_length=200)
    issue_year: int = Field(..., ge=1000)
    isbn: str
    number_of_pieces: int = Field(..., ge=0)

    @field_validator("name", "author", "isbn")
    @classmethod
    def _not_blank(cls, value: str, info) -> str:
        if not value or not value.strip():
            raise ValueError(f"{info.field_name} is required")
        return value

    @field_validator("issue_year")
    @classmethod
    def _not_in_future(cls, value: int) -> int:
        # Checked at call time so the bound moves with the calendar
        current_year = datetime.now().year
        if value > current_year:
            raise ValueError(f"IssueYear must be less than or equal to {current_year}")
        return value

    @field_validator("isbn")
    @classmethod
    def _valid_isbn(cls, value: str) -> str:
        if not ISBNValidator.validate_isbn13(value):
            raise ValueError("ISBN must be a valid ISBN-13 format")
        return value


class BatchStatusRequest(WireModel):
    book_ids: Optional[List[str]] = None


# --- Responses ---
class BookResponse(WireModel):
    id: str
    name: str
    author: str
    issue_year: int
    isbn: str
    number_of_pieces: int


class PaginatedBooks(WireModel):
    items: List[BookResponse]
    total_count: int
    page_number: int
    page_size: int


class BorrowResponse(WireModel):
    loan_id: str
    book_id: str
    user_id: int
    borrowed_date: datetime
    message: str


class BorrowStatus(WireModel):
    book_id: str
    is_borrowed_by_user: bool
    active_loan_count: int
    available_count: int


class AvailableCount(WireModel):
    book_id: str
    available_count: int


class BorrowedBook(WireModel):
    loan_id: str
    book_id: str
    name: str
    author: str
    issue_year: int
    isbn: str
    borrowed_date: datetime


class MessageResponse(WireModel):
    message: str
