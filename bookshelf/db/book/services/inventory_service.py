import logging
from typing import Mapping

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bookshelf.db.book.models.book_models import Book
from bookshelf.db.book.models.book_schemas import Book as BookSchema

logger = logging.getLogger(__name__)


class InventoryService:
    """Stock lookups and the write that turns a reservation into sold copies."""

    @staticmethod
    def get_available_copies(db: Session, book_id: int) -> int:
        """Số bản còn trong kho, 0 nếu book không tồn tại"""
        copies = db.query(Book.physical_copies).filter(Book.id == book_id).scalar()
        return copies or 0

    @staticmethod
    def check_stock_availability(db: Session, book_id: int, quantity: int) -> bool:
        return InventoryService.get_available_copies(db, book_id) >= quantity

    @staticmethod
    def apply_stock_adjustments(db: Session, reserved_stock: Mapping[BookSchema, int]) -> bool:
        """
        Move reserved copies from ``physical_copies`` to ``sold_copies`` without
        committing, so the caller can commit it together with the order.

        A book is only updated while it still has at least the reserved number
        of copies. Returns False as soon as one book falls short; the caller
        must roll back.
        """
        for book, quantity in reserved_stock.items():
            updated = db.execute(
                update(Book)
                .where(Book.id == book.id, Book.physical_copies >= quantity)
                .values(
                    physical_copies=Book.physical_copies - quantity,
                    sold_copies=Book.sold_copies + quantity,
                )
                .execution_options(synchronize_session=False)
            ).rowcount
            if updated != 1:
                logger.warning(f"Not enough stock left for book {book.id} (wanted {quantity})")
                return False
        return True

    @staticmethod
    def finalize_stock_adjustments(db: Session, reserved_stock: Mapping[BookSchema, int]) -> bool:
        """
        Apply a reservation to the books table.

        Every reserved book loses ``quantity`` physical copies and gains
        ``quantity`` sold copies. All rows change in one transaction, and
        nothing changes if any book no longer has enough copies.

        Args:
            db: Database session
            reserved_stock: Book -> reserved quantity

        Returns:
            True khi commit thành công
        """
        if not reserved_stock:
            return True

        try:
            if not InventoryService.apply_stock_adjustments(db, reserved_stock):
                db.rollback()
                return False
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error finalizing stock adjustments: {e}")
            return False

        logger.info(
            "Finalized stock for %d book(s): %s",
            len(reserved_stock),
            ", ".join(f"{book.id}x{quantity}" for book, quantity in reserved_stock.items()),
        )
        return True
