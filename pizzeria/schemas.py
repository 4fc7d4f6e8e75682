from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from .models import DeliveryStatus, OrderStatus, PaymentMethod, PaymentStatus, PizzaSize


# ----- Catalog -----

class PizzaCreate(BaseModel):
    name: str
    ingredients: List[str] = []
    size: PizzaSize = PizzaSize.MEDIUM
    base_price: float
    cooking_time: int


class IngredientRequest(BaseModel):
    ingredient: str


class PizzaRead(BaseModel):
    id: int
    name: str
    ingredients: List[str]
    size: PizzaSize
    base_price: float
    cooking_time: int
    price: float

    class Config:
        from_attributes = True


# ----- Customers -----

class CustomerCreate(BaseModel):
    name: str
    phone: str
    email: str
    address: str


class CustomerUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None


class CustomerRead(BaseModel):
    id: int
    name: str
    phone: str
    email: str
    address: str

    class Config:
        from_attributes = True


# ----- Orders -----

class CreateOrderRequest(BaseModel):
    customer_id: Optional[int] = None
    customer: Optional[CustomerCreate] = None   # registered on first order


class OrderItemRequest(BaseModel):
    pizza_id: int
    quantity: int = 1


class OrderItemRead(BaseModel):
    id: int
    pizza: PizzaRead
    quantity: int
    subtotal: float

    class Config:
        from_attributes = True


class OrderRead(BaseModel):
    id: int
    customer_id: int
    status: OrderStatus
    created_at: datetime
    total: float
    items: List[OrderItemRead]

    class Config:
        from_attributes = True


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class ProcessOrderRequest(BaseModel):
    payment_method: PaymentMethod = PaymentMethod.CARD


class ProcessOrderResponse(BaseModel):
    processed: bool
    order: OrderRead


# ----- Payments -----

class PaymentRead(BaseModel):
    id: int
    order_id: int
    amount: float
    method: PaymentMethod
    status: PaymentStatus
    created_at: datetime

    class Config:
        from_attributes = True


class RefundResponse(BaseModel):
    refunded: bool
    payment: PaymentRead


# ----- Deliveries -----

class DeliveryRead(BaseModel):
    id: int
    order_id: int
    courier: Optional[str]
    address: str
    estimated_minutes: int
    actual_minutes: int
    status: DeliveryStatus
    created_at: datetime

    class Config:
        from_attributes = True


class CourierAssignRequest(BaseModel):
    courier: str


class DeliveryStatusUpdate(BaseModel):
    status: DeliveryStatus


# ----- Reports -----

class PaymentMethodBreakdown(BaseModel):
    method: PaymentMethod
    count: int
    total: float


class SalesReport(BaseModel):
    start: datetime
    end: datetime
    total_orders: int
    total_revenue: float
    average_order_value: float
    by_method: List[PaymentMethodBreakdown]


class PizzaPopularity(BaseModel):
    name: str
    quantity: int
    revenue: float


class SystemStats(BaseModel):
    customers: int
    pizzas: int
    orders: int
    active_orders: int
    payments: int
    deliveries: int
    active_deliveries: int
