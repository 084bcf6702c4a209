import logging
from typing import List, Optional

from sqlalchemy import desc, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bookshelf.db.book.models.book_models import Book
from bookshelf.db.book.models.book_schemas import BookCreate, BookUpdate

logger = logging.getLogger(__name__)


class BookService:
    @staticmethod
    def get_all_books(db: Session) -> List[Book]:
        """Lấy tất cả books"""
        return db.query(Book).order_by(Book.id).all()

    @staticmethod
    def get_top5_books(db: Session) -> List[Book]:
        """Lấy 5 books bán chạy nhất"""
        return db.query(Book).order_by(desc(Book.sold_copies)).limit(5).all()

    @staticmethod
    def search_books_by_title(db: Session, keyword: str) -> List[Book]:
        """Tìm books theo title, không phân biệt hoa thường"""
        pattern = f"%{keyword.lower()}%"
        return db.query(Book).filter(func.lower(Book.title).like(pattern))\
            .order_by(Book.id).all()

    @staticmethod
    def find_book_by_id(db: Session, book_id: int) -> Optional[Book]:
        """Lấy book theo ID"""
        return db.query(Book).filter(Book.id == book_id).first()

    @staticmethod
    def find_books_by_ids(db: Session, book_ids: List[int]) -> List[Book]:
        if not book_ids:
            return []
        return db.query(Book).filter(Book.id.in_(book_ids)).all()

    @staticmethod
    def add_book(db: Session, book: BookCreate) -> Optional[Book]:
        """Thêm book mới, sold_copies bắt đầu từ 0"""
        db_book = Book(**book.model_dump(), sold_copies=0)
        try:
            db.add(db_book)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error adding book '{book.title}': {e}")
            return None
        db.refresh(db_book)
        return db_book

    @staticmethod
    def update_book(db: Session, book_id: int, book_update: BookUpdate) -> Optional[Book]:
        """Cập nhật thông tin book"""
        db_book = db.query(Book).filter(Book.id == book_id).first()
        if not db_book:
            return None

        for field, value in book_update.model_dump(exclude_unset=True).items():
            setattr(db_book, field, value)

        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error updating book {book_id}: {e}")
            return None
        db.refresh(db_book)
        return db_book

    @staticmethod
    def delete_book_by_id(db: Session, book_id: int) -> bool:
        """Xóa book; trả về False nếu không tồn tại hoặc còn được tham chiếu"""
        db_book = db.query(Book).filter(Book.id == book_id).first()
        if not db_book:
            return False

        try:
            db.delete(db_book)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error deleting book {book_id}: {e}")
            return False
        return True
