from coin_pricing.utils.units import to_whole_units


def format_price(price: int) -> str:
    """×10^18 price → decimal string with 6 places."""
    return f"{to_whole_units(price):.6f}"


def format_supply(supply: int) -> str:
    return f"{to_whole_units(supply):,.3f}".rstrip("0").rstrip(".")


def format_market_cap(market_cap: int) -> str:
    value = to_whole_units(market_cap)
    if value >= 1e6:
        return f"${value / 1e6:.2f}M"
    if value >= 1e3:
        return f"${value / 1e3:.2f}K"
    return f"${value:.2f}"


def format_percentage(value: float) -> str:
    """Signed percentage, e.g. +12.50%."""
    return f"{value:+.2f}%"
