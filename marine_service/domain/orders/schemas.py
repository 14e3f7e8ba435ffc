"""Order domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...models_order import Order, OrderItem, OrderStatusHistory
from ...shared.validators import validate_email, validate_phone

DELIVERY_METHODS = ("pickup", "delivery")


class ShippingAddress(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None
    postalCode: Optional[str] = None
    country: str = "Sri Lanka"

    def is_complete(self) -> bool:
        return all(v and v.strip() for v in (self.street, self.city, self.district))


class OrderItemCreate(BaseModel):
    productId: int
    quantity: int

    @field_validator("quantity")
    @classmethod
    def positive_quantity(cls, v):
        if v < 1:
            raise ValueError("Quantity must be at least 1")
        return v


class OrderCreate(BaseModel):
    """Schema for placing an order. Prices come from the catalog, not the client."""

    items: list[OrderItemCreate]
    shippingAddress: Optional[ShippingAddress] = None
    customerEmail: Optional[str] = None
    customerName: Optional[str] = None
    customerPhone: Optional[str] = None
    customerNotes: Optional[str] = None
    deliveryMethod: str = "delivery"

    @field_validator("items")
    @classmethod
    def items_required(cls, v):
        if not v:
            raise ValueError("Order items are required")
        return v

    @field_validator("deliveryMethod")
    @classmethod
    def check_delivery_method(cls, v):
        if v not in DELIVERY_METHODS:
            raise ValueError(f"Delivery method must be one of: {', '.join(DELIVERY_METHODS)}")
        return v

    @field_validator("customerEmail")
    @classmethod
    def check_email(cls, v):
        return validate_email(v) if v else None

    @field_validator("customerPhone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v) if v else None


class OrderPaymentLink(BaseModel):
    paymentId: str


class OrderStatusUpdate(BaseModel):
    status: Optional[str] = None
    notes: Optional[str] = None
    trackingNumber: Optional[str] = None


class OrderCancel(BaseModel):
    reason: Optional[str] = None


class OrderItemResponse(BaseModel):
    productId: int
    productName: str
    partNumber: Optional[str] = None
    image: Optional[str] = None
    quantity: int
    unitPrice: float
    totalPrice: float

    @classmethod
    def from_model(cls, item: OrderItem) -> "OrderItemResponse":
        return cls(
            productId=item.product_id,
            productName=item.product_name,
            partNumber=item.part_number,
            image=item.image,
            quantity=item.quantity,
            unitPrice=item.unit_price,
            totalPrice=item.total_price,
        )


class StatusHistoryEntry(BaseModel):
    status: str
    notes: Optional[str] = None
    updatedBy: Optional[int] = None
    timestamp: Optional[datetime] = None

    @classmethod
    def from_model(cls, entry: OrderStatusHistory) -> "StatusHistoryEntry":
        return cls(
            status=entry.status,
            notes=entry.notes,
            updatedBy=entry.updated_by_id,
            timestamp=entry.timestamp,
        )


class OrderResponse(BaseModel):
    """Schema for order response"""

    orderId: str
    customerId: int
    customerEmail: str
    customerName: str
    customerPhone: Optional[str] = None
    items: list[OrderItemResponse]
    subtotal: float
    shippingFee: float
    totalAmount: float
    paymentId: Optional[str] = None
    paymentStatus: str
    status: str
    shippingAddress: dict
    deliveryMethod: str
    customerNotes: Optional[str] = None
    trackingNumber: Optional[str] = None
    statusHistory: list[StatusHistoryEntry] = []
    orderDate: Optional[datetime] = None
    confirmedAt: Optional[datetime] = None
    shippedAt: Optional[datetime] = None
    deliveredAt: Optional[datetime] = None
    cancelledAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, order: Order) -> "OrderResponse":
        return cls(
            orderId=order.order_id,
            customerId=order.customer_id,
            customerEmail=order.customer_email,
            customerName=order.customer_name,
            customerPhone=order.customer_phone,
            items=[OrderItemResponse.from_model(i) for i in order.items],
            subtotal=order.subtotal,
            shippingFee=order.shipping_fee,
            totalAmount=order.total_amount,
            paymentId=order.payment_id,
            paymentStatus=order.payment_status,
            status=order.status,
            shippingAddress=order.shipping_address or {},
            deliveryMethod=order.delivery_method,
            customerNotes=order.notes,
            trackingNumber=order.tracking_number,
            statusHistory=[StatusHistoryEntry.from_model(h) for h in order.status_history],
            orderDate=order.ordered_at,
            confirmedAt=order.confirmed_at,
            shippedAt=order.shipped_at,
            deliveredAt=order.delivered_at,
            cancelledAt=order.cancelled_at,
        )

