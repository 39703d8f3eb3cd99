import pytest
from pydantic import ValidationError

from libraryapp.queries import BORROW_MESSAGE, RETURN_MESSAGE
from libraryapp.schemas import AddBookRequest, BookResponse, PaginatedBooks


def test_list_books_envelope(queries, book):
    page = queries.list_books(page_number=1, page_size=5)
    assert isinstance(page, PaginatedBooks)
    assert page.total_count == 1
    assert page.items[0].id == book.id

    wire = page.model_dump(mode="json", by_alias=True)
    assert set(wire) == {"items", "totalCount", "pageNumber", "pageSize"}
    assert set(wire["items"][0]) == {"id", "name", "author", "issueYear", "isbn", "numberOfPieces"}


def test_add_book_from_request(queries):
    request = AddBookRequest(
        name="Hyperión", author="Dan Simmons", issue_year=2016, isbn="978-80-2490001-8", number_of_pieces=4
    )
    created = queries.add_book(request)
    assert isinstance(created, BookResponse)
    assert created.isbn == "978-80-2490001-8"
    assert queries.list_books(name="hyper").total_count == 1


def test_add_request_accepts_camel_case():
    request = AddBookRequest.model_validate(
        {"name": "Mort", "author": "Terry Pratchett", "issueYear": 2010, "isbn": "9780306406157", "numberOfPieces": 1}
    )
    assert request.issue_year == 2010
    assert request.number_of_pieces == 1


@pytest.mark.parametrize(
    "override",
    [
        {"name": "   "},
        {"name": "x" * 301},
        {"author": ""},
        {"author": "y" * 201},
        {"isbn": "9780306406158"},
        {"isbn": ""},
        {"issue_year": 999},
        {"issue_year": 9999},
        {"number_of_pieces": -1},
    ],
)
def test_add_request_rejects_invalid(override):
    data = {"name": "Mort", "author": "Terry Pratchett", "issue_year": 2010, "isbn": "9780306406157", "number_of_pieces": 1}
    data.update(override)
    with pytest.raises(ValidationError):
        AddBookRequest(**data)


def test_borrow_and_return_messages(queries, book):
    borrowed = queries.borrow(book.id, 1)
    assert borrowed.message == BORROW_MESSAGE
    assert borrowed.user_id == 1
    assert borrowed.book_id == book.id

    status = queries.status(book.id, 1)
    assert status.is_borrowed_by_user
    assert status.active_loan_count == 1
    assert status.available_count == 1

    assert queries.return_book(book.id, 1).message == RETURN_MESSAGE
    assert queries.available_count(book.id).available_count == 2


def test_batch_status_keys_by_book(queries, book):
    queries.borrow(book.id, 1)
    result = queries.batch_status([book.id, "missing"], 1)
    assert list(result) == [book.id]
    assert result[book.id].active_loan_count == 1


def test_borrowed_books_carry_book_details(queries, book):
    loan = queries.borrow(book.id, 3)
    borrowed = queries.borrowed_books(3)
    assert len(borrowed) == 1
    assert borrowed[0].loan_id == loan.loan_id
    assert borrowed[0].name == "Duna"
    assert borrowed[0].isbn == book.isbn
    assert queries.borrowed_books(4) == []


def test_suggestions_pass_through(queries, book):
    assert queries.suggest_names("du") == ["Duna"]
    assert queries.suggest_authors("frank") == ["Frank Herbert"]
