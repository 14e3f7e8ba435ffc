"""Order router - FastAPI endpoints for spare part orders"""

import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin, require_staff
from ...database import get_db
from ...models import User
from .schemas import OrderCancel, OrderCreate, OrderPaymentLink, OrderResponse, OrderStatusUpdate
from .service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["Orders"])


def get_order_service(db: Session = Depends(get_db)) -> OrderService:
    """Dependency injection for OrderService"""
    return OrderService(db)


def _page(orders, page: int, limit: int, total: int) -> dict:
    return {
        "orders": [OrderResponse.from_model(o) for o in orders],
        "pagination": {
            "currentPage": page,
            "totalPages": math.ceil(total / limit) if limit else 0,
            "totalOrders": total,
            "hasNext": page * limit < total,
            "hasPrev": page > 1,
        },
    }


def _status_result(order) -> dict:
    return {
        "orderId": order.order_id,
        "status": order.status,
        "updatedAt": order.updated_at,
        "order": OrderResponse.from_model(order),
    }


# ============================================================================
# STAFF ENDPOINTS
# ============================================================================


@router.get("/employee/all")
async def get_all_orders_employee(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[str] = Query(None),
    paymentStatus: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    customer: Optional[str] = Query(None),
    current_user: User = Depends(require_staff),
    service: OrderService = Depends(get_order_service),
):
    orders, total = service.get_all_orders(page, limit, status, paymentStatus, search, customer)
    return {"success": True, "data": _page(orders, page, limit, total)}


@router.get("/employee/stats")
async def get_order_stats_employee(
    current_user: User = Depends(require_staff),
    service: OrderService = Depends(get_order_service),
):
    return {"success": True, "data": service.get_stats()}


@router.patch("/employee/{order_id}/status")
async def update_order_status_employee(
    order_id: str,
    data: OrderStatusUpdate,
    current_user: User = Depends(require_staff),
    service: OrderService = Depends(get_order_service),
):
    order = await service.update_status(
        order_id, data.status, data.notes, current_user, data.trackingNumber
    )
    return {"success": True, "data": _status_result(order)}


@router.get("/admin/all")
async def get_all_orders_admin(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[str] = Query(None),
    paymentStatus: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    customer: Optional[str] = Query(None),
    current_user: User = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    orders, total = service.get_all_orders(page, limit, status, paymentStatus, search, customer)
    return {"success": True, "data": _page(orders, page, limit, total)}


@router.get("/admin/stats")
async def get_order_stats_admin(
    current_user: User = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    return {"success": True, "data": service.get_stats()}


@router.patch("/admin/{order_id}/status")
async def update_order_status_admin(
    order_id: str,
    data: OrderStatusUpdate,
    current_user: User = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    order = await service.update_status(
        order_id, data.status, data.notes, current_user, data.trackingNumber
    )
    return {"success": True, "data": _status_result(order)}


# ============================================================================
# CUSTOMER ENDPOINTS
# ============================================================================


@router.post("", status_code=201)
async def create_order(
    data: OrderCreate,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    order = service.create_order(data, current_user)
    return {"success": True, "data": OrderResponse.from_model(order)}


@router.get("/user/orders")
async def get_user_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    orders, total = service.get_user_orders(current_user, page, limit, status)
    return {"success": True, "data": _page(orders, page, limit, total)}


@router.get("/{order_id}")
async def get_order(
    order_id: str,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    order = service.get_order_for_user(order_id, current_user)
    return {"success": True, "data": OrderResponse.from_model(order)}


@router.post("/{order_id}/payment")
async def process_order_payment(
    order_id: str,
    data: OrderPaymentLink,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    """Link a payment to the order once checkout returns"""
    order = await service.process_payment(order_id, data.paymentId, current_user)
    return {
        "success": True,
        "data": {
            "orderId": order.order_id,
            "paymentStatus": order.payment_status,
            "orderStatus": order.status,
        },
    }


@router.post("/{order_id}/cancel")
async def cancel_order(
    order_id: str,
    data: Optional[OrderCancel] = None,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    order = service.cancel_order(order_id, data.reason if data else None, current_user)
    return {
        "success": True,
        "data": {
            "orderId": order.order_id,
            "status": order.status,
            "cancelledAt": order.cancelled_at,
        },
    }
