"""Tests for field validators."""

import pytest

from obligations.utils.validators import (
    is_required,
    is_valid_amount,
    is_valid_date_range,
    is_valid_email,
    is_valid_iban,
    is_valid_number,
    is_valid_percentage,
    is_valid_phone,
    is_valid_siren,
    is_valid_siret,
)


class TestSiren:
    def test_valid_siren(self):
        assert is_valid_siren("732829320") is True

    def test_bad_checksum(self):
        assert is_valid_siren("123456789") is False

    def test_all_zeros_passes_checksum(self):
        assert is_valid_siren("000000000") is True

    @pytest.mark.parametrize("value", ["73282932", "7328293200", "", "73282932a", " 732829320", "732 829 320"])
    def test_wrong_shape_rejected(self, value):
        assert is_valid_siren(value) is False

    def test_non_ascii_digits_rejected(self):
        assert is_valid_siren("७३२८२९३२०") is False

    def test_non_string_rejected(self):
        assert is_valid_siren(732829320) is False
        assert is_valid_siren(None) is False


class TestSiret:
    def test_valid_siret(self):
        assert is_valid_siret("73282932000074") is True

    def test_siren_length_is_not_siret(self):
        assert is_valid_siret("732829320") is False

    def test_bad_checksum(self):
        assert is_valid_siret("73282932000075") is False


class TestContactFields:
    def test_email(self):
        assert is_valid_email("contact@emetteur.fr")
        assert not is_valid_email("contact@emetteur")
        assert not is_valid_email("")

    @pytest.mark.parametrize("phone", ["0612345678", "06 12 34 56 78", "+33 6 12 34 56 78", "0033612345678"])
    def test_french_phone(self, phone):
        assert is_valid_phone(phone)

    def test_invalid_phone(self):
        assert not is_valid_phone("12345")
        assert not is_valid_phone("0012345678")

    def test_iban_shape(self):
        assert is_valid_iban("FR76 3000 6000 0112 3456 7890 189")
        assert not is_valid_iban("76FR30006000")
        assert not is_valid_iban("")


class TestNumbers:
    def test_amount_must_be_positive(self):
        assert is_valid_amount(250)
        assert is_valid_amount("250.5")
        assert not is_valid_amount(0)
        assert not is_valid_amount(-10)
        assert not is_valid_amount("abc")
        assert not is_valid_amount(None)
        assert not is_valid_amount(float("nan"))

    def test_number_accepts_zero_and_negative(self):
        assert is_valid_number(0)
        assert is_valid_number("-3.5")
        assert not is_valid_number("inf")
        assert not is_valid_number(True)

    def test_percentage_bounds(self):
        assert is_valid_percentage(0)
        assert is_valid_percentage("100")
        assert not is_valid_percentage(100.01)
        assert not is_valid_percentage(-1)


class TestRequiredAndDates:
    def test_required(self):
        assert is_required("x")
        assert is_required(0)
        assert not is_required("   ")
        assert not is_required(None)

    def test_date_range(self):
        assert is_valid_date_range("2024-01-01", "2024-12-31")
        assert not is_valid_date_range("2024-12-31", "2024-01-01")
        assert not is_valid_date_range("2024-01-01", "2024-01-01")
        assert not is_valid_date_range("not a date", "2024-01-01")
