"""Typed failures raised by the catalog and the loan ledger.

Callers map them to transport responses: a missing book becomes 404,
capacity and duplicate conflicts 409, a return without an active loan 400.
"""


class LibraryError(Exception):
    """Base class for every business-rule failure of the library core."""


class BookNotFoundError(LibraryError, LookupError):
    def __init__(self, book_id: str) -> None:
        self.book_id = book_id
        super().__init__(f"Book with ID '{book_id}' not found.")


class NoCapacityError(LibraryError):
    def __init__(self, book_id: str, active_count: int, total_count: int) -> None:
        self.book_id = book_id
        self.active_count = active_count
        self.total_count = total_count
        super().__init__(
            f"No available copies of this book. Currently {active_count} out of {total_count} are borrowed."
        )


class NoActiveLoanError(LibraryError, ValueError):
    def __init__(self, book_id: str, user_id: int) -> None:
        self.book_id = book_id
        self.user_id = user_id
        super().__init__("You don't have an active loan for this book.")


class DuplicateBookError(LibraryError, ValueError):
    def __init__(self, name: str, author: str, isbn: str) -> None:
        self.name = name
        self.author = author
        self.isbn = isbn
        super().__init__(
            f"A book with the combination of Name '{name}', Author '{author}', and ISBN '{isbn}' already exists."
        )


class LoanAlreadyReturnedError(LibraryError):
    def __init__(self, loan_id: str) -> None:
        self.loan_id = loan_id
        super().__init__(f"Loan {loan_id} has already been returned.")
