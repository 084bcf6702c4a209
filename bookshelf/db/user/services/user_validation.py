"""Form checks for registration and profile screens; each returns the first problem or None."""

from typing import Optional

MIN_PASSWORD_LENGTH = 8


def _any_blank(*fields: Optional[str]) -> bool:
    return any(field is None or not field.strip() for field in fields)


def validate_registration(username: str, first_name: str, last_name: str,
                          password: str, confirm_password: str) -> Optional[str]:
    if _any_blank(username, first_name, last_name, password, confirm_password):
        return "All fields are required."
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters long."
    if password != confirm_password:
        return "Passwords do not match."
    return None


def validate_profile_update(first_name: str, last_name: str,
                            password: str, confirm_password: str) -> Optional[str]:
    if _any_blank(first_name, last_name, password, confirm_password):
        return "All fields must be filled out."
    if password != confirm_password:
        return "Passwords do not match."
    return None


def validate_admin_user_update(username: str, first_name: str, last_name: str,
                               password: str, confirm_password: str) -> Optional[str]:
    # Admins may leave the password blank to keep the stored one
    if _any_blank(username, first_name, last_name):
        return "All fields must be filled."
    if password != confirm_password:
        return "Passwords do not match."
    return None
