"""
ParserHelper Module

Provides utility functions to normalize amounts, dates and investor names
found in payment proofs and bank statements (French conventions).
"""

import math
import re
import unicodedata
from datetime import date, datetime
from typing import Optional, Union
from dateutil import parser as date_parser
from obligations.utils.logger import log_message

_EUROPEAN_DATE_RE = re.compile(r"^\s*(\d{1,2})[-/.](\d{1,2})[-/.](\d{4})\s*$")
_ISO_DATE_RE = re.compile(r"^\s*(\d{4})-(\d{1,2})-(\d{1,2})(?:[T ].*)?$")
_CURRENCY_RE = re.compile(r"(€|eur(?:os?)?\b)", re.IGNORECASE)
_SPACES_RE = re.compile(r"[\s']")


class ParserHelper:
    """Helper class for parsing amounts and dates and cleaning names."""

    @staticmethod
    def parse_amount(value: Union[str, int, float, None]) -> Optional[float]:
        """
        Convert an amount written in French or English notation to a float.

        Handles "1 000,00 €", "1.000,50", "1,000.50", "1000.50" and "250".
        A lone separator followed by exactly three digits is read as a
        thousands separator ("1.000" -> 1000.0).

        Args:
            value: Raw amount (string or number).

        Returns:
            Optional[float]: Parsed amount rounded to cents, or None if unreadable.
        """
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return round(float(value), 2) if math.isfinite(value) else None

        text = _CURRENCY_RE.sub("", str(value))
        text = _SPACES_RE.sub("", text)
        if not text:
            return None

        has_comma = "," in text
        has_dot = "." in text
        if has_comma and has_dot:
            # The right-most separator is the decimal one
            if text.rfind(",") > text.rfind("."):
                text = text.replace(".", "").replace(",", ".")
            else:
                text = text.replace(",", "")
        elif has_comma or has_dot:
            sep = "," if has_comma else "."
            parts = text.split(sep)
            if len(parts) > 2 or len(parts[-1]) == 3:
                text = "".join(parts)
            else:
                text = ".".join(parts)

        try:
            amount = float(text)
        except ValueError:
            log_message("debug", f"Unreadable amount: {value!r}")
            return None
        if not math.isfinite(amount):
            log_message("debug", f"Non-finite amount: {value!r}")
            return None
        return round(amount, 2)

    @staticmethod
    def parse_european_date(value: Optional[str]) -> Optional[date]:
        """
        Parse a DD-MM-YYYY, DD/MM/YYYY or DD.MM.YYYY date.

        ISO dates (YYYY-MM-DD) are read as such; other layouts go through
        dateutil with the day first.

        Returns:
            Optional[date]: The parsed date, or None if it cannot be read.
        """
        if not value:
            return None
        match = _EUROPEAN_DATE_RE.match(value)
        try:
            if match:
                day, month, year = (int(g) for g in match.groups())
                return date(year, month, day)
            iso = _ISO_DATE_RE.match(value)
            if iso:
                year, month, day = (int(g) for g in iso.groups())
                return date(year, month, day)
            return date_parser.parse(value, dayfirst=True).date()
        except (ValueError, OverflowError) as e:
            log_message("warning", f"Failed to parse date '{value}': {e}")
            return None

    @staticmethod
    def format_european_date(value: Union[date, datetime, str]) -> str:
        """Format a date as DD-MM-YYYY, the layout the analysis functions expect."""
        if isinstance(value, str):
            value = date_parser.parse(value).date()
        return value.strftime("%d-%m-%Y")

    @staticmethod
    def normalize_name(name: Optional[str]) -> str:
        """
        Normalize an investor or beneficiary name for comparison.

        Lowercases, strips accents, turns punctuation into spaces and
        collapses whitespace: "  Société  GÉNÉRALE, S.A." -> "societe generale s a".
        """
        if not name:
            return ""
        decomposed = unicodedata.normalize("NFKD", name)
        without_accents = "".join(c for c in decomposed if not unicodedata.combining(c))
        cleaned = re.sub(r"[^0-9a-z]+", " ", without_accents.lower())
        return cleaned.strip()

    @staticmethod
    def clean_text(s: str) -> str:
        """Normalizes inner whitespace while keeping content intact."""
        return re.sub(r"\s+", " ", s.strip())
