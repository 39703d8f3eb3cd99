from typing import Optional

_DIGITS = "0123456789"


class ISBNValidator:
    """ISBN-13 checksum validation and generation.

    Both directions share one weighting rule: digits at even positions count
    once, digits at odd positions three times, and the check digit brings
    the weighted sum up to a multiple of ten.
    """

    @staticmethod
    def normalize_isbn(raw: Optional[str]) -> str:
        if raw is None:
            return ""
        return raw.replace("-", "")

    @staticmethod
    def _is_ascii_digits(s: str) -> bool:
        # str.isdigit() also accepts superscripts and other Unicode digits
        return bool(s) and all(ch in _DIGITS for ch in s)

    @staticmethod
    def check_digit(body: str) -> int:
        total = 0
        for i, ch in enumerate(body[:12]):
            factor = 1 if i % 2 == 0 else 3
            total += factor * int(ch)
        return (10 - (total % 10)) % 10

    @staticmethod
    def validate_isbn13(candidate: Optional[str]) -> bool:
        s = ISBNValidator.normalize_isbn(candidate)
        if len(s) != 13 or not ISBNValidator._is_ascii_digits(s):
            return False
        return ISBNValidator.check_digit(s[:12]) == int(s[12])

    @staticmethod
    def generate_isbn13(body: str) -> str:
        """Append the check digit to a 12-digit body and format it as 978-XX-XXXXXXX-X."""
        s = ISBNValidator.normalize_isbn(body)
        if len(s) != 12 or not ISBNValidator._is_ascii_digits(s):
            raise ValueError(f"ISBN body must be exactly 12 digits, got: {body!r}")
        full = s + str(ISBNValidator.check_digit(s))
        return f"{full[0:3]}-{full[3:5]}-{full[5:12]}-{full[12]}"
