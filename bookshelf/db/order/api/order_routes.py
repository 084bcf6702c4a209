from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session
from typing import List

from bookshelf.db.common.database_connection import get_db
from bookshelf.db.order.services.order_service import OrderService, export_orders_csv
from bookshelf.db.order.models.order_schemas import Order

router = APIRouter()


@router.get("/orders/", response_model=List[Order])
async def get_orders_by_user(user_id: int, db: Session = Depends(get_db)):
    """Lấy lịch sử orders của một user"""
    return OrderService.get_all_orders_by_user(db, user_id)


@router.get("/orders/export")
async def export_orders(user_id: int, order_ids: List[int] = Query(default=[]),
                        db: Session = Depends(get_db)):
    """Xuất các orders đã chọn ra file CSV"""
    if not order_ids:
        raise HTTPException(status_code=400, detail="No orders selected for export.")
    orders = OrderService.get_selected_orders_by_user(db, user_id, order_ids)
    if not orders:
        raise HTTPException(status_code=404, detail="Order not found")
    return Response(
        content=export_orders_csv(orders),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="orders.csv"'},
    )


@router.get("/orders/{order_id}", response_model=Order)
async def get_order(order_id: int, db: Session = Depends(get_db)):
    """Lấy thông tin order theo ID"""
    order = OrderService.get_order_by_id(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order
