import enum
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Enum, Float, ForeignKey, Integer, String
from sqlalchemy.ext.mutable import MutableList
from sqlalchemy.orm import declarative_base, relationship, validates

from .exceptions import ValidationError
from .logs import logger
from .metrics import ORDER_STATUS_CHANGES
from .pricing import price_for

Base = declarative_base()


class PizzaSize(str, enum.Enum):
    SMALL = "SMALL"
    MEDIUM = "MEDIUM"
    LARGE = "LARGE"


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    COOKING = "COOKING"
    READY = "READY"
    DELIVERED = "DELIVERED"


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    CARD = "CARD"
    ONLINE = "ONLINE"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    # also the state of a refunded payment
    FAILED = "FAILED"


class DeliveryStatus(str, enum.Enum):
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    DELIVERED = "DELIVERED"


def _require_text(field: str, value):
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} must not be empty")
    return value


def _require_positive(field: str, value):
    if value is None or value <= 0:
        raise ValidationError(f"{field} must be greater than 0")
    return value


class Pizza(Base):
    __tablename__ = "pizzas"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    ingredients = Column(MutableList.as_mutable(JSON), nullable=False, default=list)
    size = Column(Enum(PizzaSize), nullable=False, default=PizzaSize.MEDIUM)
    base_price = Column(Float, nullable=False)
    cooking_time = Column(Integer, nullable=False)  # minutes
    # removed pizzas stay referenced by existing order items
    available = Column(Boolean, nullable=False, default=True)

    @validates("name")
    def _validate_name(self, key, value):
        return _require_text("name", value)

    @validates("base_price")
    def _validate_base_price(self, key, value):
        return _require_positive("base_price", value)

    @validates("cooking_time")
    def _validate_cooking_time(self, key, value):
        return _require_positive("cooking_time", value)

    @property
    def price(self) -> float:
        return price_for(self.base_price, self.size)

    def add_ingredient(self, ingredient: str) -> bool:
        if not ingredient or ingredient in self.ingredients:
            return False
        self.ingredients.append(ingredient)
        return True

    def remove_ingredient(self, ingredient: str) -> bool:
        if not ingredient or ingredient not in self.ingredients:
            return False
        self.ingredients.remove(ingredient)
        return True

    def __repr__(self):
        return f"<Pizza(id={self.id}, name={self.name!r}, size={self.size})>"


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    phone = Column(String(50), nullable=False, index=True)
    email = Column(String(200), nullable=False)
    address = Column(String(500), nullable=False)

    orders = relationship("Order", back_populates="customer", order_by="Order.id")

    @validates("name", "phone", "email", "address")
    def _validate_fields(self, key, value):
        return _require_text(key, value)

    def update(self, name=None, phone=None, email=None, address=None):
        """Overwrite only the fields given a non-empty replacement."""
        for field, value in (("name", name), ("phone", phone), ("email", email), ("address", address)):
            if value and value.strip():
                setattr(self, field, value)

    def __repr__(self):
        return f"<Customer(id={self.id}, name={self.name!r}, phone={self.phone!r})>"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.PENDING)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    customer = relationship("Customer", back_populates="orders")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    payments = relationship("Payment", back_populates="order", order_by="Payment.id")
    deliveries = relationship("Delivery", back_populates="order", order_by="Delivery.id")

    @validates("customer")
    def _validate_customer(self, key, value):
        if value is None:
            raise ValidationError("customer is required")
        return value

    def add_item(self, pizza: Pizza, quantity: int) -> "OrderItem":
        """
        Add ``quantity`` of ``pizza`` to the order.

        A line for the same pizza and size is incremented instead of
        appending a second row.
        """
        if pizza is None:
            raise ValidationError("pizza is required")
        _require_positive("quantity", quantity)

        for item in self.items:
            if item.merge_key == (pizza.id, pizza.size) and pizza.id is not None:
                item.quantity += quantity
                return item

        item = OrderItem(pizza=pizza, quantity=quantity)
        self.items.append(item)
        return item

    def remove_item(self, item: "OrderItem"):
        if item in self.items:
            self.items.remove(item)

    def calculate_total(self) -> float:
        # current catalog prices, never snapshotted
        return sum(item.subtotal for item in self.items)

    @property
    def total(self) -> float:
        return self.calculate_total()

    def set_status(self, new_status: OrderStatus):
        self.status = new_status
        ORDER_STATUS_CHANGES.labels(new_status.value).inc()
        logger.info(f"Order {self.id} status changed to {new_status.value}")


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    pizza_id = Column(Integer, ForeignKey("pizzas.id"), nullable=False)
    quantity = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="items")
    pizza = relationship("Pizza")

    @validates("pizza")
    def _validate_pizza(self, key, value):
        if value is None:
            raise ValidationError("pizza is required")
        return value

    @validates("quantity")
    def _validate_quantity(self, key, value):
        return _require_positive("quantity", value)

    @property
    def merge_key(self):
        return (self.pizza.id, self.pizza.size)

    @property
    def subtotal(self) -> float:
        return self.pizza.price * self.quantity


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)  # fixed at charge time
    method = Column(Enum(PaymentMethod), nullable=False)
    status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    order = relationship("Order", back_populates="payments")

    @validates("order")
    def _validate_order(self, key, value):
        if value is None:
            raise ValidationError("order is required")
        return value

    @validates("amount")
    def _validate_amount(self, key, value):
        return _require_positive("amount", value)


class Delivery(Base):
    __tablename__ = "deliveries"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    courier = Column(String(200), nullable=True)
    address = Column(String(500), nullable=False)  # copied from the customer at creation
    estimated_minutes = Column(Integer, nullable=False)
    actual_minutes = Column(Integer, nullable=False, default=0)
    status = Column(Enum(DeliveryStatus), nullable=False, default=DeliveryStatus.ASSIGNED)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    order = relationship("Order", back_populates="deliveries")

    @validates("order")
    def _validate_order(self, key, value):
        if value is None:
            raise ValidationError("order is required")
        return value
