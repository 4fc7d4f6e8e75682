SIZE_MULTIPLIERS = {
    "SMALL": 0.8,
    "MEDIUM": 1.0,
    "LARGE": 1.3,
}


def size_multiplier(size) -> float:
    key = getattr(size, "value", size)
    return SIZE_MULTIPLIERS.get(key, 1.0)


def price_for(base_price: float, size) -> float:
    return base_price * size_multiplier(size)
