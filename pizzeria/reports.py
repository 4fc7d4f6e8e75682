"""Read-only aggregations over orders, payments and deliveries."""
from datetime import datetime
from typing import Dict, List

from sqlalchemy.orm import Session

from . import schemas
from .exceptions import ValidationError
from .models import (
    Customer,
    Delivery,
    DeliveryStatus,
    Order,
    OrderStatus,
    Payment,
    PaymentStatus,
    Pizza,
)


def sales_report(session: Session, start: datetime, end: datetime) -> schemas.SalesReport:
    """
    Orders created and revenue collected in ``[start, end]``.

    Revenue counts only COMPLETED payments, so refunded ones drop out. The
    average divides revenue by the number of orders in the period.
    """
    total_orders = (
        session.query(Order)
        .filter(Order.created_at >= start, Order.created_at <= end)
        .count()
    )
    completed = (
        session.query(Payment)
        .filter(
            Payment.status == PaymentStatus.COMPLETED,
            Payment.created_at >= start,
            Payment.created_at <= end,
        )
        .order_by(Payment.id)
        .all()
    )

    total_revenue = sum(p.amount for p in completed)
    average = total_revenue / total_orders if total_orders else 0.0

    by_method: Dict = {}
    for p in completed:
        count, total = by_method.get(p.method, (0, 0.0))
        by_method[p.method] = (count + 1, total + p.amount)

    return schemas.SalesReport(
        start=start,
        end=end,
        total_orders=total_orders,
        total_revenue=round(total_revenue, 2),
        average_order_value=round(average, 2),
        by_method=[
            schemas.PaymentMethodBreakdown(method=m, count=c, total=round(t, 2))
            for m, (c, t) in by_method.items()
        ],
    )


def popular_pizzas(session: Session, limit: int = 10) -> List[schemas.PizzaPopularity]:
    if limit < 1:
        raise ValidationError("limit must be at least 1")
    stats: Dict[str, List] = {}
    for order in session.query(Order).order_by(Order.id).all():
        for item in order.items:
            entry = stats.setdefault(item.pizza.name, [0, 0.0])
            entry[0] += item.quantity
            entry[1] += item.subtotal

    ranked = sorted(stats.items(), key=lambda kv: kv[1][0], reverse=True)
    return [
        schemas.PizzaPopularity(name=name, quantity=qty, revenue=round(revenue, 2))
        for name, (qty, revenue) in ranked[:limit]
    ]


def system_stats(session: Session) -> schemas.SystemStats:
    return schemas.SystemStats(
        customers=session.query(Customer).count(),
        pizzas=session.query(Pizza).filter(Pizza.available.is_(True)).count(),
        orders=session.query(Order).count(),
        active_orders=session.query(Order).filter(Order.status != OrderStatus.DELIVERED).count(),
        payments=session.query(Payment).count(),
        deliveries=session.query(Delivery).count(),
        active_deliveries=session.query(Delivery).filter(Delivery.status != DeliveryStatus.DELIVERED).count(),
    )
