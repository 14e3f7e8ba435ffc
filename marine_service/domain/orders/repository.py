"""Order repository - Database operations for orders"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import Product
from ...models_order import Order, OrderItem, OrderStatusHistory

logger = logging.getLogger(__name__)


class OrderRepository:
    """Repository for order database operations"""

    @staticmethod
    def get_by_order_id(db: Session, order_id: str) -> Optional[Order]:
        return db.query(Order).filter(Order.order_id == order_id).first()

    @staticmethod
    def get_products(db: Session, product_ids: list[int]) -> dict[int, Product]:
        products = db.query(Product).filter(Product.id.in_(product_ids)).all()
        return {p.id: p for p in products}

    @staticmethod
    def list_orders(
        db: Session,
        page: int,
        limit: int,
        customer_id: Optional[int] = None,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        search: Optional[str] = None,
        customer_name: Optional[str] = None,
    ) -> tuple[list[Order], int]:
        """One page of orders, newest first, plus the total count"""
        query = db.query(Order)
        if customer_id is not None:
            query = query.filter(Order.customer_id == customer_id)
        if status and status != "all":
            query = query.filter(Order.status == status)
        if payment_status and payment_status != "all":
            query = query.filter(Order.payment_status == payment_status)
        if customer_name and customer_name != "all":
            query = query.filter(Order.customer_name == customer_name)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    Order.order_id.ilike(pattern),
                    Order.customer_name.ilike(pattern),
                    Order.customer_email.ilike(pattern),
                )
            )

        total = query.count()
        orders = (
            query.order_by(Order.ordered_at.desc(), Order.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return orders, total

    @staticmethod
    def get_stats(db: Session) -> dict:
        total_orders, total_revenue, average = db.query(
            func.count(Order.id),
            func.coalesce(func.sum(Order.total_amount), 0),
            func.coalesce(func.avg(Order.total_amount), 0),
        ).one()
        paid_revenue = (
            db.query(func.coalesce(func.sum(Order.total_amount), 0))
            .filter(Order.payment_status == "paid")
            .scalar()
        )
        status_counts = db.query(Order.status, func.count(Order.id)).group_by(Order.status).all()
        payment_counts = (
            db.query(Order.payment_status, func.count(Order.id))
            .group_by(Order.payment_status)
            .all()
        )
        return {
            "totalOrders": total_orders,
            "totalRevenue": float(total_revenue),
            "paidRevenue": float(paid_revenue),
            "averageOrderValue": round(float(average), 2),
            "statusCounts": [{"status": s, "count": c} for s, c in status_counts],
            "paymentStatusCounts": [{"paymentStatus": s, "count": c} for s, c in payment_counts],
        }

    @staticmethod
    def create_order(db: Session, items: list[dict], **data) -> Order:
        order = Order(**data)
        order.items = [OrderItem(**item) for item in items]
        order.status_history = [OrderStatusHistory(status="pending", notes="Order placed")]
        db.add(order)
        db.commit()
        db.refresh(order)
        return order

    @staticmethod
    def add_history(
        order: Order, status: str, notes: Optional[str] = None, updated_by_id: Optional[int] = None
    ) -> None:
        order.status_history.append(
            OrderStatusHistory(status=status, notes=notes or "", updated_by_id=updated_by_id)
        )

    @staticmethod
    def mark_paid(db: Session, order: Order, payment_id: str) -> Order:
        """
        Record a succeeded payment on the order.

        Confirms a pending order and takes the items out of stock. Stock is
        only decremented the first time, so repeated calls change nothing.
        The caller commits.
        """
        order.payment_id = payment_id
        order.payment_status = "paid"

        if order.status == "pending":
            order.status = "confirmed"
            order.confirmed_at = datetime.utcnow()
            OrderRepository.add_history(order, "confirmed", f"Payment {payment_id} received")

        if not order.stock_applied:
            for item in order.items:
                product = db.query(Product).filter(Product.id == item.product_id).first()
                if product is None:
                    logger.warning(f"⚠️ Product {item.product_id} on order {order.order_id} no longer exists")
                    continue
                if product.quantity < item.quantity:
                    logger.warning(
                        f"⚠️ Stock for product {product.id} went below zero on order {order.order_id}, clamping"
                    )
                product.quantity = max(0, product.quantity - item.quantity)
            order.stock_applied = True
            logger.info(f"📦 Stock updated for order {order.order_id}")

        return order

    @staticmethod
    def save(db: Session, order: Order) -> Order:
        db.commit()
        db.refresh(order)
        return order
