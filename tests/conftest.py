import pytest

from libraryapp.catalog import Catalog
from libraryapp.config import settings
from libraryapp.ledger import LoanLedger
from libraryapp.queries import LibraryQueries
from libraryapp.ui_helpers import OUTPUT_MODE_ENV


@pytest.fixture
def db_file(tmp_path, request, monkeypatch):
    # A unique database per test; settings point at it so API and CLI pick it up too
    path = str(tmp_path / f"test_{request.node.name}.db")
    monkeypatch.setattr(settings, "database_file", path)
    monkeypatch.setenv(OUTPUT_MODE_ENV, "plain")
    return path


@pytest.fixture
def catalog(db_file):
    return Catalog(db_file)


@pytest.fixture
def ledger(db_file):
    return LoanLedger(db_file, atomic_borrow=False)


@pytest.fixture
def queries(catalog, ledger):
    return LibraryQueries(catalog, ledger)


@pytest.fixture
def book(catalog):
    """One title with two copies."""
    return catalog.add_book(
        name="Duna",
        author="Frank Herbert",
        issue_year=2015,
        isbn="978-80-2490004-9",
        number_of_pieces=2,
    )
