from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from .exceptions import ValidationError
from .logs import logger
from .models import Pizza, PizzaSize
from .pricing import price_for


class Catalog:
    """The purchasable pizza definitions and their size-adjusted pricing."""

    def __init__(self, session: Session):
        self.session = session

    def add_pizza(
        self,
        name: str,
        ingredients: Iterable[str],
        size: PizzaSize,
        base_price: float,
        cooking_time: int,
    ) -> Pizza:
        ingredients = list(ingredients or [])
        if len(set(ingredients)) != len(ingredients):
            raise ValidationError("ingredients must not contain duplicates")

        pizza = Pizza(
            name=name,
            ingredients=ingredients,
            size=size,
            base_price=base_price,
            cooking_time=cooking_time,
            available=True,
        )
        self.session.add(pizza)
        self.session.flush()  # get pizza id
        logger.info(f"Pizza {pizza.id} '{pizza.name}' added to menu")
        return pizza

    def remove_pizza(self, pizza_id: int) -> bool:
        pizza = self.find_by_id(pizza_id)
        if pizza is None:
            return False
        pizza.available = False
        self.session.flush()
        logger.info(f"Pizza {pizza_id} removed from menu")
        return True

    def find_by_id(self, pizza_id: int) -> Optional[Pizza]:
        return (
            self.session.query(Pizza)
            .filter(Pizza.id == pizza_id, Pizza.available.is_(True))
            .first()
        )

    def pizzas(self) -> List[Pizza]:
        return (
            self.session.query(Pizza)
            .filter(Pizza.available.is_(True))
            .order_by(Pizza.id)
            .all()
        )

    def price_for(self, pizza: Pizza) -> float:
        return price_for(pizza.base_price, pizza.size)
