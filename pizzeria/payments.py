import random
import time
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from . import config
from .exceptions import ValidationError
from .logs import logger
from .metrics import PAYMENTS
from .models import Order, Payment, PaymentMethod, PaymentStatus


class PaymentProcessor:
    """
    Simulated payment processing.

    ``rng`` only needs a ``randint(a, b)`` method; tests pass a stub to force
    the outcome. ``sleep`` and ``delay`` model the gateway round trip.
    """

    def __init__(
        self,
        session: Session,
        rng=None,
        sleep: Callable[[float], None] = time.sleep,
        delay: float = config.PAYMENT_DELAY_SECONDS,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.session = session
        self.rng = rng if rng is not None else random.Random()
        self.sleep = sleep
        self.delay = delay
        self.clock = clock

    def charge(self, order: Order, method: PaymentMethod) -> Payment:
        if order is None:
            raise ValidationError("order is required")
        if not order.items:
            raise ValidationError(f"order {order.id} has no items")

        payment = Payment(
            amount=order.total,
            method=method,
            status=PaymentStatus.PENDING,
            created_at=self.clock(),
            order=order,
        )
        self.session.add(payment)
        self.session.flush()  # get payment id
        logger.info(f"Payment {payment.id} created for order {order.id}: {payment.amount:.2f} via {method.value}")
        return payment

    def process(self, payment: Payment) -> bool:
        if payment.status != PaymentStatus.PENDING:
            logger.warning(f"Payment {payment.id} already resolved as {payment.status.value}")
            return False

        try:
            logger.info(f"Processing payment {payment.id} of {payment.amount:.2f}")
            self.sleep(self.delay)
            outcome = self.rng.randint(1, config.PAYMENT_OUTCOMES)
            succeeded = outcome <= config.PAYMENT_SUCCESS_OUTCOMES
        except Exception:
            logger.exception(f"Payment {payment.id} processing error")
            succeeded = False

        payment.status = PaymentStatus.COMPLETED if succeeded else PaymentStatus.FAILED
        self.session.flush()
        PAYMENTS.labels(payment.method.value, payment.status.value).inc()

        if succeeded:
            logger.info(f"Payment {payment.id} completed")
        else:
            logger.warning(f"Payment {payment.id} failed")
        return succeeded

    def refund(self, payment: Payment) -> bool:
        if payment.status != PaymentStatus.COMPLETED:
            logger.warning(f"Payment {payment.id} cannot be refunded in status {payment.status.value}")
            return False

        payment.status = PaymentStatus.FAILED
        self.session.flush()
        logger.info(f"Payment {payment.id} refunded: {payment.amount:.2f}")
        return True

    def find_by_id(self, payment_id: int) -> Optional[Payment]:
        return self.session.query(Payment).filter(Payment.id == payment_id).first()

    def payments(self) -> List[Payment]:
        return self.session.query(Payment).order_by(Payment.id).all()

    def for_order(self, order_id: int) -> List[Payment]:
        return (
            self.session.query(Payment)
            .filter(Payment.order_id == order_id)
            .order_by(Payment.id)
            .all()
        )
