from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from .exceptions import ValidationError
from .logs import logger
from .models import Customer, Order, OrderStatus


class OrderBook:
    def __init__(self, session: Session, clock: Callable[[], datetime] = datetime.now):
        self.session = session
        self.clock = clock

    def create(self, customer: Customer) -> Order:
        if customer is None:
            raise ValidationError("customer is required")
        order = Order(customer=customer, status=OrderStatus.PENDING, created_at=self.clock())
        self.session.add(order)
        self.session.flush()  # get order id
        logger.info(f"Order {order.id} created for customer {customer.id}")
        return order

    def find_by_id(self, order_id: int) -> Optional[Order]:
        return self.session.query(Order).filter(Order.id == order_id).first()

    def orders(self) -> List[Order]:
        return self.session.query(Order).order_by(Order.id).all()

    def for_customer(self, customer_id: int) -> List[Order]:
        return (
            self.session.query(Order)
            .filter(Order.customer_id == customer_id)
            .order_by(Order.id)
            .all()
        )
