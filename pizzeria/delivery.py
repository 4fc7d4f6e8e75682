from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from . import config
from .exceptions import ValidationError
from .logs import logger
from .models import Delivery, DeliveryStatus, Order


def estimate_minutes(order: Order) -> int:
    """Base delivery time plus the longest cooking time in the order."""
    longest = max((item.pizza.cooking_time for item in order.items), default=0)
    return config.BASE_DELIVERY_MINUTES + longest


class DeliveryDispatcher:
    def __init__(self, session: Session, clock: Callable[[], datetime] = datetime.now):
        self.session = session
        self.clock = clock

    def create(self, order: Order) -> Delivery:
        if order is None:
            raise ValidationError("order is required")

        delivery = Delivery(
            address=order.customer.address,
            estimated_minutes=estimate_minutes(order),
            actual_minutes=0,
            status=DeliveryStatus.ASSIGNED,
            created_at=self.clock(),
            order=order,
        )
        self.session.add(delivery)
        self.session.flush()  # get delivery id
        logger.info(f"Delivery {delivery.id} created for order {order.id}, eta {delivery.estimated_minutes} min")
        return delivery

    def assign_courier(self, delivery: Delivery, courier: str):
        if not courier or not courier.strip():
            raise ValidationError("courier must not be empty")
        delivery.courier = courier
        delivery.status = DeliveryStatus.ASSIGNED
        self.session.flush()
        logger.info(f"Courier '{courier}' assigned to delivery {delivery.id}")

    def update_status(self, delivery: Delivery, new_status: DeliveryStatus):
        delivery.status = new_status
        if new_status == DeliveryStatus.DELIVERED:
            elapsed = self.clock() - delivery.created_at
            delivery.actual_minutes = int(elapsed.total_seconds() / 60)
        self.session.flush()
        logger.info(f"Delivery {delivery.id} status changed to {new_status.value}")

    def find_by_id(self, delivery_id: int) -> Optional[Delivery]:
        return self.session.query(Delivery).filter(Delivery.id == delivery_id).first()

    def deliveries(self) -> List[Delivery]:
        return self.session.query(Delivery).order_by(Delivery.id).all()

    def active(self) -> List[Delivery]:
        return (
            self.session.query(Delivery)
            .filter(Delivery.status != DeliveryStatus.DELIVERED)
            .order_by(Delivery.id)
            .all()
        )

    def for_order(self, order_id: int) -> List[Delivery]:
        return (
            self.session.query(Delivery)
            .filter(Delivery.order_id == order_id)
            .order_by(Delivery.id)
            .all()
        )
