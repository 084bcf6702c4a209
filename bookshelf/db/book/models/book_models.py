from sqlalchemy import Column, Integer, String, Numeric

from bookshelf.db.common.database_connection import Base


class Book(Base):
    """Model cho sách trong catalog"""
    __tablename__ = "books"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    author = Column(String(255), nullable=False)
    physical_copies = Column(Integer, nullable=False, default=0)
    price = Column(Numeric(10, 2), nullable=False)
    sold_copies = Column(Integer, nullable=False, default=0)
