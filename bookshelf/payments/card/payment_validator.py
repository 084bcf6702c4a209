"""
Format checks for the card payment form.

Each ``validate_*`` function returns None when the field is acceptable and a
user-facing error string otherwise. No gateway is contacted.
"""

import re
from datetime import date
from typing import Optional

CARD_NUMBER_LENGTH = 16
_EXPIRY_PATTERN = re.compile(r"^(0[1-9]|1[0-2])/(\d{2})$")
_CVV_PATTERN = re.compile(r"^\d{3}$")


def normalize_card_number(card_number: str) -> str:
    return re.sub(r"[\s-]", "", card_number or "")


def validate_card_number(card_number: Optional[str]) -> Optional[str]:
    digits = normalize_card_number(card_number)
    if not digits:
        return "Card number is required."
    if not digits.isdigit() or len(digits) != CARD_NUMBER_LENGTH:
        return f"Card number must be {CARD_NUMBER_LENGTH} digits."
    return None


def validate_expiry_date(expiry_date: Optional[str], today: Optional[date] = None) -> Optional[str]:
    value = (expiry_date or "").strip()
    if not value:
        return "Expiry date is required."
    match = _EXPIRY_PATTERN.match(value)
    if not match:
        return "Expiry date must be in MM/YY format."

    today = today or date.today()
    month, year = int(match.group(1)), 2000 + int(match.group(2))
    # A card is valid through the last day of its expiry month
    if (year, month) < (today.year, today.month):
        return "Card has expired."
    return None


def validate_cvv(cvv: Optional[str]) -> Optional[str]:
    value = (cvv or "").strip()
    if not value:
        return "CVV is required."
    if not _CVV_PATTERN.match(value):
        return "CVV must be 3 digits."
    return None


def validate_payment_details(card_number: Optional[str], expiry_date: Optional[str],
                             cvv: Optional[str], today: Optional[date] = None) -> Optional[str]:
    """Run every check and return the first error, in field order."""
    errors = [
        validate_card_number(card_number),
        validate_expiry_date(expiry_date, today),
        validate_cvv(cvv),
    ]
    return next((error for error in errors if error is not None), None)
