import pytest

from libraryapp.validators import ISBNValidator


@pytest.mark.parametrize(
    "candidate",
    [
        "9780306406157",
        "978-0-306-40615-7",
        "9780199535675",
        "978-80-2490004-9",
    ],
)
def test_validate_isbn13_accepts_valid(candidate):
    assert ISBNValidator.validate_isbn13(candidate) is True


@pytest.mark.parametrize(
    "candidate",
    [
        None,
        "",
        "9780306406158",       # wrong check digit
        "978030640615",        # too short
        "97803064061570",      # too long
        "978 0306406157",      # spaces are not stripped
        "97803064O6157",       # letter O
        "978030640615²",       # unicode superscript digit
        "978-0-306-40615-X",
    ],
)
def test_validate_isbn13_rejects_invalid(candidate):
    assert ISBNValidator.validate_isbn13(candidate) is False


def test_normalize_strips_only_hyphens():
    assert ISBNValidator.normalize_isbn("978-0-306-40615-7") == "9780306406157"
    assert ISBNValidator.normalize_isbn(" 978 ") == " 978 "
    assert ISBNValidator.normalize_isbn(None) == ""


def test_check_digit():
    assert ISBNValidator.check_digit("978030640615") == 7
    assert ISBNValidator.check_digit("978802490001") == 8


def test_generate_isbn13_formats_with_hyphens():
    assert ISBNValidator.generate_isbn13("978802490001") == "978-80-2490001-8"
    assert ISBNValidator.generate_isbn13("978-030640615") == "978-03-0640615-7"


def test_generated_isbn_validates():
    generated = ISBNValidator.generate_isbn13("978802490004")
    assert generated == "978-80-2490004-9"
    assert ISBNValidator.validate_isbn13(generated)


@pytest.mark.parametrize("body", ["97880249000", "9788024900011", "97880249000a", ""])
def test_generate_isbn13_rejects_bad_body(body):
    with pytest.raises(ValueError, match="12 digits"):
        ISBNValidator.generate_isbn13(body)


def test_single_digit_mutation_is_detected():
    valid = "9780306406157"
    for position in range(13):
        for digit in "0123456789":
            if digit == valid[position]:
                continue
            mutated = valid[:position] + digit + valid[position + 1:]
            assert not ISBNValidator.validate_isbn13(mutated), mutated
