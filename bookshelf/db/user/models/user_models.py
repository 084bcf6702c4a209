from sqlalchemy import Column, Integer, String, Boolean
from sqlalchemy.orm import relationship

from bookshelf.db.common.database_connection import Base
from bookshelf.db.cart.models.cart_models import Cart


class User(Base):
    """Model cho người dùng"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)
    first_name = Column(String(100))
    last_name = Column(String(100))
    is_admin = Column(Boolean, nullable=False, default=False)

    # Relationships
    carts = relationship(Cart, cascade="all, delete-orphan")
