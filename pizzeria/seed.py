from .catalog import Catalog
from .models import PizzaSize

DEFAULT_MENU = [
    ("Margherita", ["Tomato sauce", "Mozzarella", "Basil"], 150.0, 15),
    ("Pepperoni", ["Tomato sauce", "Mozzarella", "Pepperoni"], 180.0, 18),
    ("Hawaiian", ["Tomato sauce", "Mozzarella", "Ham", "Pineapple"], 200.0, 20),
    ("Four Cheese", ["Cream sauce", "Mozzarella", "Parmesan", "Gorgonzola", "Cheddar"], 220.0, 16),
]


def seed_default_menu(catalog: Catalog):
    return [
        catalog.add_pizza(name, ingredients, PizzaSize.MEDIUM, base_price, cooking_time)
        for name, ingredients, base_price, cooking_time in DEFAULT_MENU
    ]
