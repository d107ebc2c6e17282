import re
from typing import Optional

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_NUMERIC_ISBN_RE = re.compile(r"^(\d{9}[\dX]|\d{13})$")


class ISBNValidator:
    """Catalog keys are trimmed and upper-cased. Numeric ISBN-10/13 values also
    lose their hyphens and spaces so every spelling maps to one title; any
    other key (e.g. ``ISBN-001``) is kept as written.
    """

    @staticmethod
    def normalize_isbn(raw: Optional[str]) -> str:
        if raw is None:
            return ""
        s = raw.strip().upper()
        compact = re.sub(r"[\s-]", "", s)
        if _NUMERIC_ISBN_RE.match(compact):
            return compact
        return s

    @staticmethod
    def is_valid_isbn(isbn: Optional[str]) -> bool:
        return bool(ISBNValidator.normalize_isbn(isbn))


class TextValidator:
    """Basic text validations for patron and book fields."""

    @staticmethod
    def is_blank(text: Optional[str]) -> bool:
        return text is None or not text.strip()

    @staticmethod
    def validate_name(name: Optional[str]) -> bool:
        if TextValidator.is_blank(name):
            return False
        # must not be digits only
        return not name.strip().isdigit()

    @staticmethod
    def validate_email(email: Optional[str]) -> bool:
        # email is optional
        if TextValidator.is_blank(email):
            return True
        return bool(_EMAIL_RE.match(email.strip()))

    @staticmethod
    def clean(text: Optional[str]) -> str:
        if text is None:
            return ""
        return re.sub(r"\s+", " ", text).strip()
