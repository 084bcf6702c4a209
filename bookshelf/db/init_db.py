#!/usr/bin/env python3
"""
Script để khởi tạo database cho Bookshelf.
Chạy script này để tạo tables và dữ liệu mẫu:

    python -m bookshelf.db.init_db
"""

import logging
import sys
from decimal import Decimal

from sqlalchemy.orm import Session

from bookshelf.core import config
from bookshelf.core.logging_config import setup_logging
from bookshelf.db.common.database_connection import SessionLocal, init_database, test_connection
from bookshelf.db.book.models.book_models import Book
from bookshelf.db.user.services.user_service import UserService

logger = logging.getLogger(__name__)

# title, author, physical_copies, price, sold_copies
INITIAL_BOOKS = [
    ("To Kill a Mockingbird", "Harper Lee", 120, Decimal("25"), 580),
    ("1984", "George Orwell", 150, Decimal("22"), 720),
    ("The Great Gatsby", "F. Scott Fitzgerald", 100, Decimal("20"), 650),
    ("Pride and Prejudice", "Jane Austen", 200, Decimal("18"), 540),
    ("The Catcher in the Rye", "J. D. Salinger", 180, Decimal("24"), 430),
    ("The Hobbit", "J. R. R. Tolkien", 250, Decimal("30"), 900),
    ("Sapiens: A Brief History of Humankind", "Yuval Noah Harari", 300, Decimal("35"), 670),
    ("Atomic Habits", "James Clear", 500, Decimal("28"), 1100),
    ("The Alchemist", "Paulo Coelho", 400, Decimal("23"), 850),
]


def seed_database(db: Session, seed_books: bool = None):
    """
    Tạo admin user và catalog ban đầu nếu chưa có.
    Gọi nhiều lần không tạo dữ liệu trùng.
    """
    if UserService.get_user_by_username(db, config.ADMIN_USERNAME) is None:
        UserService.register_user(db, config.ADMIN_USERNAME, "Admin", "User",
                                  config.ADMIN_PASSWORD, is_admin=True)
        logger.info(f"Created admin user: {config.ADMIN_USERNAME}")

    if seed_books is None:
        seed_books = config.SEED_BOOKS
    if not seed_books or db.query(Book).first() is not None:
        return

    db.add_all([
        Book(title=title, author=author, physical_copies=copies, price=price, sold_copies=sold)
        for title, author, copies, price, sold in INITIAL_BOOKS
    ])
    db.commit()
    logger.info(f"Seeded {len(INITIAL_BOOKS)} books")


def main():
    """Main function"""
    setup_logging()
    logger.info("Initializing Bookshelf database...")

    # Test connection trước
    if not test_connection():
        logger.error("Please check your DATABASE_URL in .env file")
        sys.exit(1)

    init_database()

    with SessionLocal() as db:
        seed_database(db)

    logger.info("Database initialization completed")


if __name__ == "__main__":
    main()
