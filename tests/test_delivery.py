import pytest

from pizzeria.exceptions import ValidationError
from pizzeria.models import DeliveryStatus, PizzaSize


def test_create_copies_address_and_estimates(system, order, margherita, customer, clock):
    slow = system.catalog.add_pizza("Calzone", [], PizzaSize.LARGE, 210.0, 25)
    order.add_item(margherita, 1)
    order.add_item(slow, 1)

    delivery = system.dispatcher.create(order)

    assert delivery.address == customer.address
    assert delivery.estimated_minutes == 20 + 25
    assert delivery.actual_minutes == 0
    assert delivery.status == DeliveryStatus.ASSIGNED
    assert delivery.courier is None
    assert delivery.created_at == clock.now


def test_address_is_not_updated_later(system, order, margherita, customer):
    order.add_item(margherita, 1)
    delivery = system.dispatcher.create(order)

    system.customers.update(customer.id, address="99 Other St")

    assert delivery.address == "12 Khreshchatyk St"


def test_empty_order_estimate_is_base_time(system, order):
    assert system.dispatcher.create(order).estimated_minutes == 20


def test_create_requires_order(system):
    with pytest.raises(ValidationError):
        system.dispatcher.create(None)


def test_assign_courier_resets_status(system, order):
    delivery = system.dispatcher.create(order)
    system.dispatcher.update_status(delivery, DeliveryStatus.IN_PROGRESS)

    system.dispatcher.assign_courier(delivery, "Petro")

    assert delivery.courier == "Petro"
    assert delivery.status == DeliveryStatus.ASSIGNED


@pytest.mark.parametrize("courier", ["", "  ", None])
def test_assign_courier_rejects_empty_name(system, order, courier):
    delivery = system.dispatcher.create(order)
    with pytest.raises(ValidationError):
        system.dispatcher.assign_courier(delivery, courier)
    assert delivery.courier is None


def test_delivered_records_elapsed_whole_minutes(system, order, clock):
    delivery = system.dispatcher.create(order)
    clock.advance(minutes=37, seconds=59)

    system.dispatcher.update_status(delivery, DeliveryStatus.DELIVERED)

    assert delivery.status == DeliveryStatus.DELIVERED
    assert delivery.actual_minutes == 37


def test_non_final_status_leaves_actual_time(system, order, clock):
    delivery = system.dispatcher.create(order)
    clock.advance(minutes=5)

    system.dispatcher.update_status(delivery, DeliveryStatus.IN_PROGRESS)

    assert delivery.actual_minutes == 0


def test_active_deliveries(system, order):
    first = system.dispatcher.create(order)
    second = system.dispatcher.create(order)
    system.dispatcher.update_status(first, DeliveryStatus.DELIVERED)

    assert system.dispatcher.active() == [second]
    assert system.dispatcher.for_order(order.id) == [first, second]
