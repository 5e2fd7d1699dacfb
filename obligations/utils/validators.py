"""
Validators Module

Field validators for French business identifiers and form values used when
registering investors, subscriptions and payments.
"""

import math
import re
from typing import Any, Union
from dateutil import parser as date_parser

SIREN_LENGTH = 9
SIRET_LENGTH = 14

_EMAIL_RE = re.compile(r"^[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}$", re.IGNORECASE)
_PHONE_FR_RE = re.compile(r"^(?:(?:\+|00)33|0)\s*[1-9](?:[\s.-]*\d{2}){4}$")
_IBAN_RE = re.compile(r"^[A-Z]{2}[0-9]{2}[A-Z0-9]{1,30}$")


def _luhn_checksum_ok(digits: str) -> bool:
    """Luhn mod-10 check, doubling every second digit from the right."""
    total = 0
    for position, char in enumerate(reversed(digits)):
        digit = int(char)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def _is_ascii_digits(value: Any, length: int) -> bool:
    # str.isdigit() accepts non-ASCII digits such as superscripts
    return isinstance(value, str) and re.fullmatch(rf"[0-9]{{{length}}}", value) is not None


def is_valid_siren(value: Any) -> bool:
    """
    Validate a SIREN number.

    A SIREN is exactly 9 ASCII digits whose Luhn (mod-10) checksum is 0.

    Args:
        value: Candidate SIREN.

    Returns:
        bool: True if the value is a well-formed SIREN.
    """
    return _is_ascii_digits(value, SIREN_LENGTH) and _luhn_checksum_ok(value)


def is_valid_siret(value: Any) -> bool:
    """Validate a SIRET number (14 digits, Luhn checksum)."""
    return _is_ascii_digits(value, SIRET_LENGTH) and _luhn_checksum_ok(value)


def is_valid_email(email: str) -> bool:
    return bool(email) and _EMAIL_RE.match(email) is not None


def is_valid_phone(phone: str) -> bool:
    """Validate a French phone number (0X XX XX XX XX, +33, 0033)."""
    return bool(phone) and _PHONE_FR_RE.match(phone) is not None


def is_valid_iban(iban: str) -> bool:
    """Shape check only: country code, check digits, up to 30 alphanumerics."""
    if not iban:
        return False
    return _IBAN_RE.match(re.sub(r"\s", "", iban)) is not None


def _to_number(value: Union[str, int, float, None]) -> float:
    if value is None or isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return math.nan


def is_valid_number(value: Union[str, int, float, None]) -> bool:
    """Any finite number, negative and zero included."""
    return math.isfinite(_to_number(value))


def is_valid_amount(amount: Union[str, int, float, None]) -> bool:
    """A payment amount must be a finite, strictly positive number."""
    number = _to_number(amount)
    return math.isfinite(number) and number > 0


def is_valid_percentage(value: Union[str, int, float, None]) -> bool:
    number = _to_number(value)
    return math.isfinite(number) and 0 <= number <= 100


def is_required(value: Any) -> bool:
    """True unless the value is None or a blank string."""
    if value is None:
        return False
    if isinstance(value, str):
        return len(value.strip()) > 0
    return True


def is_valid_date_range(start_date: str, end_date: str) -> bool:
    """
    Check that start_date is strictly before end_date.

    Unparseable dates make the range invalid.
    """
    try:
        start = date_parser.parse(start_date)
        end = date_parser.parse(end_date)
    except (ValueError, OverflowError, TypeError):
        return False
    return start < end
