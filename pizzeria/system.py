import threading
import time
from datetime import datetime
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from . import config
from .catalog import Catalog
from .customers import CustomerDirectory
from .delivery import DeliveryDispatcher
from .logs import logger
from .metrics import ORDERS_PROCESSED
from .models import Delivery, DeliveryStatus, Order, OrderItem, OrderStatus, PaymentMethod
from .notifications import Notifier
from .orders import OrderBook
from .payments import PaymentProcessor


class PizzeriaSystem:
    """
    Composes catalog, customers, orders, payments and dispatch.

    ``process_order`` is the one transaction spanning all of them:
    charge -> process payment -> order to COOKING -> create delivery.
    """

    def __init__(
        self,
        session: Session,
        rng=None,
        sleep: Callable[[float], None] = time.sleep,
        payment_delay: float = config.PAYMENT_DELAY_SECONDS,
        clock: Callable[[], datetime] = datetime.now,
        notifier: Optional[Notifier] = None,
    ):
        self.session = session
        self.catalog = Catalog(session)
        self.customers = CustomerDirectory(session)
        self.orders = OrderBook(session, clock=clock)
        self.payments = PaymentProcessor(session, rng=rng, sleep=sleep, delay=payment_delay, clock=clock)
        self.dispatcher = DeliveryDispatcher(session, clock=clock)
        self.notifier = notifier or Notifier()

        self._order_locks: Dict[int, threading.Lock] = {}
        self._order_locks_guard = threading.Lock()

    def _order_lock(self, order_id: int) -> threading.Lock:
        with self._order_locks_guard:
            return self._order_locks.setdefault(order_id, threading.Lock())

    # ----- Orders -----

    def create_order(self, customer_id: int) -> Optional[Order]:
        customer = self.customers.find_by_id(customer_id)
        if customer is None:
            return None
        return self.orders.create(customer)

    def add_item(self, order_id: int, pizza_id: int, quantity: int) -> Optional[OrderItem]:
        order = self.orders.find_by_id(order_id)
        pizza = self.catalog.find_by_id(pizza_id)
        if order is None or pizza is None:
            return None
        item = order.add_item(pizza, quantity)
        self.session.flush()
        return item

    def process_order(self, order_id: int, payment_method: PaymentMethod) -> bool:
        """
        Pay for an order and dispatch it.

        Returns False when the order is unknown or empty, when the payment
        fails, or on any unexpected error. Records created before the failure
        are kept as they are.
        """
        order = self.orders.find_by_id(order_id)
        if order is None:
            ORDERS_PROCESSED.labels("REJECTED").inc()
            return False

        with self._order_lock(order.id):
            if not order.items:
                ORDERS_PROCESSED.labels("REJECTED").inc()
                return False

            try:
                payment = self.payments.charge(order, payment_method)
                if not self.payments.process(payment):
                    ORDERS_PROCESSED.labels("PAYMENT_FAILED").inc()
                    logger.warning(f"Order {order.id} payment {payment.id} failed")
                    return False

                order.set_status(OrderStatus.COOKING)
                delivery = self.dispatcher.create(order)
                self.session.flush()
            except Exception:
                ORDERS_PROCESSED.labels("ERROR").inc()
                logger.exception(f"Order {order_id} processing failed")
                return False

        ORDERS_PROCESSED.labels("DISPATCHED").inc()
        try:
            self.notifier.notify(
                "ORDER_PROCESSED",
                order.customer.email,
                f"Order #{order.id} paid",
                f"Your order total is {order.total:.2f}. Estimated delivery in {delivery.estimated_minutes} min.",
            )
        except Exception:
            # the order is already dispatched
            logger.exception(f"Order {order.id} notification failed")
        return True

    def update_order_status(self, order_id: int, status: OrderStatus) -> bool:
        order = self.orders.find_by_id(order_id)
        if order is None:
            return False
        order.set_status(status)
        self.session.flush()
        self.notifier.notify(
            "ORDER_STATUS_CHANGED",
            order.customer.email,
            f"Order #{order.id} is {status.value}",
            f"Your order status is now {status.value}.",
        )
        return True

    # ----- Payments -----

    def refund_payment(self, payment_id: int) -> bool:
        payment = self.payments.find_by_id(payment_id)
        if payment is None:
            return False
        return self.payments.refund(payment)

    # ----- Deliveries -----

    def assign_courier(self, delivery_id: int, courier: str) -> bool:
        delivery = self.dispatcher.find_by_id(delivery_id)
        if delivery is None:
            return False
        self.dispatcher.assign_courier(delivery, courier)
        return True

    def update_delivery_status(self, delivery_id: int, status: DeliveryStatus) -> bool:
        delivery: Optional[Delivery] = self.dispatcher.find_by_id(delivery_id)
        if delivery is None:
            return False
        self.dispatcher.update_status(delivery, status)
        if status == DeliveryStatus.DELIVERED:
            self.update_order_status(delivery.order_id, OrderStatus.DELIVERED)
        return True

