import logging
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session
from typing import List

from bookshelf.db.common.database_connection import get_db
from bookshelf.db.book.services.book_service import BookService
from bookshelf.db.book.models.book_schemas import Book, BookCreate, BookUpdate
from bookshelf.db.user.services.user_service import UserService
from bookshelf.db.user.services import user_validation
from bookshelf.db.user.models.user_schemas import AdminUserUpdate, User
from bookshelf.db.order.services.order_service import OrderService
from bookshelf.db.order.models.order_schemas import Order

logger = logging.getLogger(__name__)


def require_admin(x_username: str = Header("", alias="X-Username"), db: Session = Depends(get_db)) -> str:
    """Chỉ cho phép user có quyền admin"""
    if not x_username or not UserService.is_admin_user(db, x_username):
        raise HTTPException(status_code=403, detail="Admin privileges required.")
    return x_username


router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


# Books
@router.get("/books/", response_model=List[Book])
async def list_books(db: Session = Depends(get_db)):
    return BookService.get_all_books(db)


@router.post("/books/", response_model=Book, status_code=status.HTTP_201_CREATED)
async def create_book(book: BookCreate, db: Session = Depends(get_db)):
    """Thêm book mới vào catalog"""
    db_book = BookService.add_book(db, book)
    if not db_book:
        raise HTTPException(status_code=500, detail="Failed to add book.")
    return db_book


@router.put("/books/{book_id}", response_model=Book)
async def update_book(book_id: int, book_update: BookUpdate, db: Session = Depends(get_db)):
    """Cập nhật book (title, author, giá, tồn kho)"""
    db_book = BookService.update_book(db, book_id, book_update)
    if not db_book:
        raise HTTPException(status_code=404, detail="Book not found")
    return db_book


@router.delete("/books/{book_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_book(book_id: int, db: Session = Depends(get_db)):
    """Xóa book; book đã có trong giỏ hàng hoặc order thì không xóa được"""
    if not BookService.find_book_by_id(db, book_id):
        raise HTTPException(status_code=404, detail="Book not found")
    if not BookService.delete_book_by_id(db, book_id):
        raise HTTPException(status_code=409, detail="Book is referenced by carts or orders.")


# Users
@router.get("/users/", response_model=List[User])
async def list_users(db: Session = Depends(get_db)):
    return UserService.get_all_users(db)


@router.put("/users/{user_id}", response_model=User)
async def update_user(user_id: int, user_update: AdminUserUpdate, db: Session = Depends(get_db)):
    """Admin cập nhật user; password để trống thì giữ nguyên"""
    if not UserService.get_user(db, user_id):
        raise HTTPException(status_code=404, detail="User not found")

    error = user_validation.validate_admin_user_update(
        user_update.username, user_update.first_name, user_update.last_name,
        user_update.password, user_update.confirm_password,
    )
    if error:
        raise HTTPException(status_code=400, detail=error)

    if not UserService.update_user_profile_by_id(db, user_id, user_update.username.strip(),
                                                 user_update.first_name.strip(),
                                                 user_update.last_name.strip(),
                                                 user_update.password, user_update.is_admin):
        raise HTTPException(status_code=409, detail="Failed to update user.")
    return UserService.get_user(db, user_id)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: int, request: Request, db: Session = Depends(get_db)):
    """Xóa user cùng giỏ hàng của user đó"""
    if not UserService.get_user(db, user_id):
        raise HTTPException(status_code=404, detail="User not found")
    if not UserService.delete_user(db, user_id):
        raise HTTPException(status_code=409, detail="User has orders and cannot be deleted.")
    request.app.state.checkout_registry.discard(user_id)
    logger.info(f"Deleted user {user_id}")


# Orders
@router.get("/orders/", response_model=List[Order])
async def list_orders(db: Session = Depends(get_db)):
    return OrderService.get_all_orders(db)


@router.delete("/orders/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(order_id: int, db: Session = Depends(get_db)):
    """Xóa order và các order items"""
    if not OrderService.delete_order_by_id(db, order_id):
        raise HTTPException(status_code=404, detail="Order not found")
