from datetime import datetime, timedelta

import pytest
from sqlalchemy.orm import sessionmaker

from pizzeria.db import init_db, make_engine
from pizzeria.models import PizzaSize
from pizzeria.notifications import Notifier
from pizzeria.system import PizzeriaSystem


class FixedRandom:
    """Always draws the same outcome: 1-9 pay, 10 declines."""

    def __init__(self, value):
        self.value = value
        self.calls = 0

    def randint(self, a, b):
        self.calls += 1
        return self.value


class Clock:
    def __init__(self, start=datetime(2026, 1, 1, 12, 0)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def session():
    engine = make_engine("sqlite://")
    init_db(engine)
    s = sessionmaker(bind=engine, autoflush=False)()
    yield s
    s.close()
    engine.dispose()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def system(session, clock):
    return PizzeriaSystem(
        session,
        rng=FixedRandom(1),
        sleep=lambda seconds: None,
        payment_delay=0,
        clock=clock,
        notifier=Notifier(base_url=""),
    )


@pytest.fixture
def margherita(system):
    return system.catalog.add_pizza(
        "Margherita", ["Tomato sauce", "Mozzarella", "Basil"], PizzaSize.MEDIUM, 150.0, 15
    )


@pytest.fixture
def customer(system):
    return system.customers.register("Olena", "+380501112233", "olena@example.com", "12 Khreshchatyk St")


@pytest.fixture
def order(system, customer):
    return system.orders.create(customer)
