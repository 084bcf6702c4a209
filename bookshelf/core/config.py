import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


# Database settings
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./bookshelf.db")
DATABASE_ECHO = _as_bool(os.getenv("DATABASE_ECHO", "false"))

# Password hashing
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))
ALLOW_LEGACY_PASSWORDS = _as_bool(os.getenv("ALLOW_LEGACY_PASSWORDS", "true"))

# Seed data
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123")
SEED_BOOKS = _as_bool(os.getenv("SEED_BOOKS", "true"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "")
