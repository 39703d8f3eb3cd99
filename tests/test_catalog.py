import sqlite3

import pytest

from libraryapp.catalog import MAX_PAGE_NUMBER, MAX_PAGE_SIZE, SUGGESTION_LIMIT, clamp_page
from libraryapp.database import get_db_connection
from libraryapp.exceptions import DuplicateBookError


def _add(catalog, name, author="Some Author", isbn="9780306406157", year=2000, pieces=1):
    return catalog.add_book(name=name, author=author, issue_year=year, isbn=isbn, number_of_pieces=pieces)


def test_empty_catalog(catalog):
    items, total, page, size = catalog.list_books()
    assert items == []
    assert total == 0
    assert (page, size) == (1, 10)


def test_add_and_get(catalog):
    book = _add(catalog, "Solaris", "Stanisław Lem", pieces=3)
    stored = catalog.get_book(book.id)
    assert stored is not None
    assert stored.name == "Solaris"
    assert stored.number_of_pieces == 3
    assert catalog.get_book("missing") is None


def test_add_zero_pieces_is_allowed(catalog):
    book = _add(catalog, "Reference Only", pieces=0)
    assert catalog.get_book(book.id).number_of_pieces == 0


def test_duplicate_triple_is_rejected(catalog):
    _add(catalog, "Mort", "Terry Pratchett", isbn="9780199535675")
    with pytest.raises(DuplicateBookError, match="already exists"):
        _add(catalog, "Mort", "Terry Pratchett", isbn="9780199535675")
    assert catalog.list_books()[1] == 1


def test_same_title_with_other_isbn_is_a_new_book(catalog):
    _add(catalog, "Mort", "Terry Pratchett", isbn="9780199535675")
    _add(catalog, "Mort", "Terry Pratchett", isbn="9780306406157")
    assert catalog.list_books()[1] == 2


def test_list_is_ordered_by_name_then_author(catalog):
    _add(catalog, "Dune", "Zeta", isbn="1")
    _add(catalog, "Alpha", "Beta", isbn="2")
    _add(catalog, "Dune", "Alpha", isbn="3")
    items, _, _, _ = catalog.list_books()
    assert [(b.name, b.author) for b in items] == [("Alpha", "Beta"), ("Dune", "Alpha"), ("Dune", "Zeta")]


def test_filters_are_case_insensitive_substrings(catalog):
    _add(catalog, "Solaris", "Stanisław Lem", isbn="111")
    _add(catalog, "Hobit", "J.R.R. Tolkien", isbn="222")

    items, total, _, _ = catalog.list_books(name="LARI")
    assert total == 1
    assert items[0].name == "Solaris"

    items, total, _, _ = catalog.list_books(author="STANISŁAW")
    assert total == 1

    _, total, _, _ = catalog.list_books(isbn="22")
    assert total == 1


def test_filters_combine_with_and(catalog):
    _add(catalog, "Hobit", "J.R.R. Tolkien", isbn="1")
    _add(catalog, "Silmarillion", "J.R.R. Tolkien", isbn="2")
    _, total, _, _ = catalog.list_books(name="hob", author="tolkien")
    assert total == 1
    _, total, _, _ = catalog.list_books(name="hob", author="asimov")
    assert total == 0


def test_blank_filters_are_ignored(catalog):
    _add(catalog, "Hobit", isbn="1")
    _add(catalog, "Duna", isbn="2")
    _, total, _, _ = catalog.list_books(name="   ", author="", isbn=None)
    assert total == 2


def test_paging(catalog):
    for i in range(5):
        _add(catalog, f"Book {i}", isbn=str(i))

    items, total, page, size = catalog.list_books(page_number=2, page_size=2)
    assert total == 5
    assert (page, size) == (2, 2)
    assert [b.name for b in items] == ["Book 2", "Book 3"]

    items, total, _, _ = catalog.list_books(page_number=10, page_size=2)
    assert items == []
    assert total == 5


@pytest.mark.parametrize(
    "given, expected",
    [
        ((0, 10), (1, 10)),
        ((-3, 10), (1, 10)),
        ((1, 0), (1, 1)),
        ((1, -5), (1, 1)),
        ((2, 500), (2, MAX_PAGE_SIZE)),
        ((10**19, 10), (MAX_PAGE_NUMBER, 10)),
    ],
)
def test_clamp_page(given, expected):
    assert clamp_page(*given) == expected


def test_list_reports_clamped_paging(catalog):
    _, _, page, size = catalog.list_books(page_number=0, page_size=1000)
    assert (page, size) == (1, MAX_PAGE_SIZE)


def test_malformed_rows_are_hidden(catalog, db_file):
    _add(catalog, "Good", isbn="1")
    conn = get_db_connection(db_file)
    try:
        conn.execute(
            "INSERT INTO books (id, name, author, isbn, issue_year, number_of_pieces) VALUES (?, ?, ?, ?, ?, ?)",
            ("bad-1", "", "Nobody", "2", 2000, 1),
        )
        conn.execute(
            "INSERT INTO books (id, name, author, isbn, issue_year, number_of_pieces) VALUES (?, ?, ?, ?, ?, ?)",
            ("bad-2", "Goodish", "Nobody", "", 2000, 1),
        )
        conn.commit()
    finally:
        conn.close()

    items, total, _, _ = catalog.list_books()
    assert total == 1
    assert [b.name for b in items] == ["Good"]
    assert catalog.suggest_names("Good") == ["Good"]


def test_suggest_names_by_prefix(catalog):
    _add(catalog, "Hobit", isbn="1")
    _add(catalog, "Hobit", author="Other", isbn="2")
    _add(catalog, "Hobbes", isbn="3")
    _add(catalog, "The Hobit", isbn="4")

    assert catalog.suggest_names("hob") == ["Hobbes", "Hobit"]
    assert catalog.suggest_names("HOBI") == ["Hobit"]
    assert catalog.suggest_names("xyz") == []


def test_suggest_authors_by_prefix(catalog):
    _add(catalog, "A", author="Isaac Asimov", isbn="1")
    _add(catalog, "B", author="Isaac Asimov", isbn="2")
    _add(catalog, "C", author="Ian Banks", isbn="3")
    assert catalog.suggest_authors("i") == ["Ian Banks", "Isaac Asimov"]
    assert catalog.suggest_authors("isaac") == ["Isaac Asimov"]


@pytest.mark.parametrize("prefix", [None, "", "   "])
def test_suggest_blank_prefix_returns_nothing(catalog, prefix):
    _add(catalog, "Hobit", isbn="1")
    assert catalog.suggest_names(prefix) == []
    assert catalog.suggest_authors(prefix) == []


def test_suggestions_are_capped(catalog):
    for i in range(SUGGESTION_LIMIT + 5):
        _add(catalog, f"Series {i:02d}", isbn=str(i))
    names = catalog.suggest_names("series")
    assert len(names) == SUGGESTION_LIMIT
    assert names == sorted(names)


def test_page_size_is_capped_at_one_hundred(catalog):
    for i in range(150):
        _add(catalog, f"Title {i:03d}", isbn=str(i))
    items, total, page, size = catalog.list_books(page_size=200)
    assert total == 150
    assert size == MAX_PAGE_SIZE
    assert len(items) == 100

    items, _, _, _ = catalog.list_books(page_number=2, page_size=200)
    assert len(items) == 50


def test_negative_pieces_are_rejected_by_the_store(catalog):
    with pytest.raises(sqlite3.IntegrityError):
        _add(catalog, "Broken", pieces=-1)
    assert catalog.list_books()[1] == 0


def test_huge_page_number_gives_an_empty_page(catalog):
    _add(catalog, "Only", isbn="1")
    items, total, page, size = catalog.list_books(page_number=10**19, page_size=MAX_PAGE_SIZE)
    assert items == []
    assert total == 1
    assert (page, size) == (MAX_PAGE_NUMBER, MAX_PAGE_SIZE)
