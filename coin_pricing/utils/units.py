# Token amounts carry 18 decimals; prices are scaled by the same factor
WEI = 10**18


def to_whole_units(amount: int) -> float:
    """Base units (18 decimals) → whole coins as float."""
    return amount / WEI
