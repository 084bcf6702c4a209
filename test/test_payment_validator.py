import pytest
from datetime import date

from bookshelf.payments.card import payment_validator

TODAY = date(2024, 6, 15)


@pytest.mark.parametrize("card_number", ["4111111111111111", "4111 1111 1111 1111", "4111-1111-1111-1111"])
def test_card_number_accepts_sixteen_digits(card_number):
    assert payment_validator.validate_card_number(card_number) is None


@pytest.mark.parametrize("card_number, error", [
    ("", "Card number is required."),
    (None, "Card number is required."),
    ("4111 1111 1111", "Card number must be 16 digits."),
    ("4111 1111 1111 111x", "Card number must be 16 digits."),
])
def test_card_number_errors(card_number, error):
    assert payment_validator.validate_card_number(card_number) == error


def test_expiry_in_current_month_is_valid():
    assert payment_validator.validate_expiry_date("06/24", TODAY) is None
    assert payment_validator.validate_expiry_date("01/30", TODAY) is None


@pytest.mark.parametrize("expiry, error", [
    ("", "Expiry date is required."),
    ("13/25", "Expiry date must be in MM/YY format."),
    ("6/25", "Expiry date must be in MM/YY format."),
    ("2025-06", "Expiry date must be in MM/YY format."),
    ("05/24", "Card has expired."),
    ("12/23", "Card has expired."),
])
def test_expiry_errors(expiry, error):
    assert payment_validator.validate_expiry_date(expiry, TODAY) == error


@pytest.mark.parametrize("cvv, error", [
    ("123", None),
    ("", "CVV is required."),
    ("12", "CVV must be 3 digits."),
    ("1234", "CVV must be 3 digits."),
    ("abc", "CVV must be 3 digits."),
])
def test_cvv(cvv, error):
    assert payment_validator.validate_cvv(cvv) == error


def test_validate_payment_details_returns_first_error():
    assert payment_validator.validate_payment_details("123", "bad", "1", TODAY) == "Card number must be 16 digits."
    assert payment_validator.validate_payment_details("4111111111111111", "05/24", "1", TODAY) == "Card has expired."
    assert payment_validator.validate_payment_details("4111111111111111", "06/24", "123", TODAY) is None
