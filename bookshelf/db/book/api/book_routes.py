from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List

from bookshelf.db.common.database_connection import get_db
from bookshelf.db.book.services.book_service import BookService
from bookshelf.db.book.models.book_schemas import Book

router = APIRouter()


@router.get("/books/", response_model=List[Book])
async def get_books(db: Session = Depends(get_db)):
    """Lấy tất cả books"""
    return BookService.get_all_books(db)


@router.get("/books/top", response_model=List[Book])
async def get_top_books(db: Session = Depends(get_db)):
    """Lấy 5 books bán chạy nhất"""
    return BookService.get_top5_books(db)


@router.get("/books/search", response_model=List[Book])
async def search_books(q: str = Query("", description="Một phần của title"), db: Session = Depends(get_db)):
    """Tìm books theo title"""
    if not q.strip():
        return BookService.get_all_books(db)
    return BookService.search_books_by_title(db, q.strip())


@router.get("/books/{book_id}", response_model=Book)
async def get_book(book_id: int, db: Session = Depends(get_db)):
    """Lấy book theo ID"""
    db_book = BookService.find_book_by_id(db, book_id)
    if not db_book:
        raise HTTPException(status_code=404, detail="Book not found")
    return db_book
