from typing import Optional

from passlib.context import CryptContext

from bookshelf.core import config

BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=config.BCRYPT_ROUNDS,
)


def hash_password(plain_password: Optional[str]) -> Optional[str]:
    if plain_password is None:
        return None
    return pwd_context.hash(plain_password)


def verify_password(plain_password: Optional[str], hashed_password: Optional[str]) -> bool:
    if plain_password is None or hashed_password is None:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def is_bcrypt_hash(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.startswith(BCRYPT_PREFIXES)
