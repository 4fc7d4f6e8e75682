from typing import List, Optional

from sqlalchemy.orm import Session

from .logs import logger
from .models import Customer


class CustomerDirectory:
    def __init__(self, session: Session):
        self.session = session

    def register(self, name: str, phone: str, email: str, address: str) -> Customer:
        customer = Customer(name=name, phone=phone, email=email, address=address)
        self.session.add(customer)
        self.session.flush()  # get customer id
        logger.info(f"Customer {customer.id} registered")
        return customer

    def find_by_id(self, customer_id: int) -> Optional[Customer]:
        return self.session.query(Customer).filter(Customer.id == customer_id).first()

    def find_by_phone(self, phone: str) -> Optional[Customer]:
        # phone is not unique; the earliest registration wins
        return (
            self.session.query(Customer)
            .filter(Customer.phone == phone)
            .order_by(Customer.id)
            .first()
        )

    def customers(self) -> List[Customer]:
        return self.session.query(Customer).order_by(Customer.id).all()

    def update(self, customer_id: int, name=None, phone=None, email=None, address=None) -> Optional[Customer]:
        customer = self.find_by_id(customer_id)
        if customer is None:
            return None
        customer.update(name=name, phone=phone, email=email, address=address)
        self.session.flush()
        return customer
