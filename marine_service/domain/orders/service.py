"""Order service - Spare part orders, payment linkage and fulfilment status"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import STORE_ADDRESS, STORE_CITY, STORE_NAME, STORE_POSTAL_CODE
from ...models import User
from ...models_order import ORDER_STATUSES, Order
from ...models_payment import Payment
from ...security_utils import generate_reference
from ..payments.linkage import ServiceType
from .repository import OrderRepository
from .schemas import OrderCreate, OrderItemResponse

logger = logging.getLogger(__name__)

SHIPPING_FEE = 0.0

# Status -> lifecycle timestamp column
STATUS_TIMESTAMPS = {
    "confirmed": "confirmed_at",
    "shipped": "shipped_at",
    "delivered": "delivered_at",
    "cancelled": "cancelled_at",
}


async def send_order_confirmation(order: Order) -> None:
    """E-mail the paid order summary; delivery failures are only logged"""
    try:
        from ...email_service import send_order_confirmation_email

        await send_order_confirmation_email(
            to=order.customer_email,
            customer_name=order.customer_name,
            order_id=order.order_id,
            items=[OrderItemResponse.from_model(i).model_dump() for i in order.items],
            total_amount=order.total_amount,
        )
    except Exception as e:
        logger.warning(f"⚠️ Failed to send order confirmation for {order.order_id}: {e}")


class OrderService:
    """Service layer for order business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrderRepository()

    def get_order(self, order_id: str) -> Order:
        order = self.repo.get_by_order_id(self.db, order_id)
        if not order:
            raise HTTPException(status_code=404, detail="Order not found")
        return order

    def get_order_for_user(self, order_id: str, user: User) -> Order:
        order = self.get_order(order_id)
        if order.customer_id != user.id and not user.is_staff:
            raise HTTPException(status_code=403, detail="Not authorized to access this order")
        return order

    def create_order(self, data: OrderCreate, user: User) -> Order:
        """Place an order priced from the catalog at the current stock level"""
        if data.deliveryMethod == "pickup":
            shipping_address = {
                "street": f"{STORE_NAME}, {STORE_ADDRESS}",
                "city": STORE_CITY,
                "district": STORE_CITY,
                "postalCode": STORE_POSTAL_CODE,
                "country": "Sri Lanka",
            }
        else:
            if not data.shippingAddress or not data.shippingAddress.is_complete():
                raise HTTPException(
                    status_code=400,
                    detail="Complete shipping address is required for delivery orders",
                )
            shipping_address = data.shippingAddress.model_dump()

        products = self.repo.get_products(self.db, [item.productId for item in data.items])

        # Stock is checked against the total requested per product, across all lines
        requested: dict[int, int] = {}
        for item in data.items:
            requested[item.productId] = requested.get(item.productId, 0) + item.quantity
        for product_id, quantity in requested.items():
            product = products.get(product_id)
            if not product:
                raise HTTPException(status_code=400, detail=f"Product not found: {product_id}")
            if product.quantity < quantity:
                raise HTTPException(
                    status_code=400,
                    detail=(
                        f"Insufficient stock for {product.name}. "
                        f"Available: {product.quantity}, Requested: {quantity}"
                    ),
                )

        subtotal = 0.0
        lines = []
        for item in data.items:
            product = products[item.productId]
            line_total = round(product.price * item.quantity, 2)
            subtotal += line_total
            lines.append(
                {
                    "product_id": product.id,
                    "product_name": product.name,
                    "part_number": product.part_number,
                    "image": product.image,
                    "quantity": item.quantity,
                    "unit_price": product.price,
                    "total_price": line_total,
                }
            )

        subtotal = round(subtotal, 2)
        order = self.repo.create_order(
            self.db,
            lines,
            order_id=generate_reference("ORD"),
            customer_id=user.id,
            customer_email=data.customerEmail or user.email,
            customer_name=data.customerName or user.name,
            customer_phone=data.customerPhone or user.phone,
            subtotal=subtotal,
            shipping_fee=SHIPPING_FEE,
            total_amount=round(subtotal + SHIPPING_FEE, 2),
            shipping_address=shipping_address,
            delivery_method=data.deliveryMethod,
            notes=data.customerNotes,
            status="pending",
            payment_status="pending",
        )
        logger.info(f"🛒 Order {order.order_id} created for {user.email} ({order.total_amount})")
        return order

    def get_user_orders(
        self, user: User, page: int = 1, limit: int = 10, status: Optional[str] = None
    ) -> tuple[list[Order], int]:
        return self.repo.list_orders(self.db, page, limit, customer_id=user.id, status=status)

    def get_all_orders(
        self,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        search: Optional[str] = None,
        customer: Optional[str] = None,
    ) -> tuple[list[Order], int]:
        return self.repo.list_orders(
            self.db,
            page,
            limit,
            status=status,
            payment_status=payment_status,
            search=search,
            customer_name=customer,
        )

    def get_stats(self) -> dict:
        return self.repo.get_stats(self.db)

    async def process_payment(self, order_id: str, payment_id: str, user: User) -> Order:
        """Attach a spare_parts payment to the order; a succeeded one marks it paid"""
        order = self.get_order_for_user(order_id, user)
        payment = self.db.query(Payment).filter(Payment.payment_id == payment_id).first()
        if not payment:
            raise HTTPException(status_code=404, detail="Payment not found")
        if payment.service_type != ServiceType.SPARE_PARTS.value or payment.service_id != order.order_id:
            raise HTTPException(status_code=400, detail="Payment does not belong to this order")

        newly_paid = False
        if payment.status == "succeeded":
            newly_paid = order.payment_status != "paid"
            self.repo.mark_paid(self.db, order, payment.payment_id)
        elif order.payment_status != "paid":
            order.payment_id = payment.payment_id
            order.payment_status = "failed" if payment.status == "failed" else "pending"

        order = self.repo.save(self.db, order)
        logger.info(
            f"🔗 Payment {payment_id} linked to order {order.order_id} (payment {order.payment_status})"
        )
        if newly_paid:
            await send_order_confirmation(order)
        return order

    async def update_status(
        self,
        order_id: str,
        status: Optional[str],
        notes: Optional[str],
        user: User,
        tracking_number: Optional[str] = None,
    ) -> Order:
        if not status:
            raise HTTPException(status_code=400, detail="Status is required")
        if status not in ORDER_STATUSES:
            raise HTTPException(status_code=400, detail="Invalid status")

        order = self.get_order(order_id)
        previous = order.status
        order.status = status
        timestamp_column = STATUS_TIMESTAMPS.get(status)
        if timestamp_column:
            setattr(order, timestamp_column, datetime.utcnow())
        if tracking_number:
            order.tracking_number = tracking_number
        self.repo.add_history(order, status, notes, user.id)
        order = self.repo.save(self.db, order)
        logger.info(f"🔄 Order {order.order_id}: {previous} → {status} by {user.email}")

        try:
            from ...email_service import send_order_status_email

            await send_order_status_email(
                to=order.customer_email,
                customer_name=order.customer_name,
                order_id=order.order_id,
                status=status,
                notes=notes,
            )
        except Exception as e:
            logger.warning(f"⚠️ Failed to send status update email for {order.order_id}: {e}")

        return order

    def cancel_order(self, order_id: str, reason: Optional[str], user: User) -> Order:
        order = self.get_order_for_user(order_id, user)
        if order.status in ("delivered", "cancelled"):
            raise HTTPException(
                status_code=400, detail="Cannot cancel delivered or already cancelled order"
            )

        order.status = "cancelled"
        order.cancelled_at = datetime.utcnow()
        self.repo.add_history(order, "cancelled", reason or "Order cancelled by customer", user.id)
        logger.info(f"🚫 Order {order.order_id} cancelled by {user.email}")
        return self.repo.save(self.db, order)
