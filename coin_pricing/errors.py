"""
Error taxonomy for the pricing engine.

Every failure is a local validation failure of a pure computation, so none
of these are retryable: the same inputs always raise the same error.
"""


class PricingError(ValueError):
    """Base class for all pricing engine failures."""


class InvalidSupplyError(PricingError):
    """Supply is negative or at/above the curve's total supply cap."""

    def __init__(self, supply: int, total_supply_cap: int):
        self.supply = supply
        self.total_supply_cap = total_supply_cap
        super().__init__(
            f"Supply {supply} is outside the curve domain [0, {total_supply_cap})"
        )


class InvalidTradeError(PricingError):
    """Trade would push supply outside [0, cap)."""

    def __init__(self, message: str, current_supply: int = None, trade_amount: int = None):
        self.current_supply = current_supply
        self.trade_amount = trade_amount
        super().__init__(message)


class SlippageExceededError(PricingError):
    """Computed price impact is above the adjusted slippage bound."""

    def __init__(self, price_impact: float, max_slippage: float):
        self.price_impact = price_impact
        self.max_slippage = max_slippage
        super().__init__(
            f"Price impact too high: {price_impact * 100:.2f}% (max: {max_slippage * 100:.2f}%)"
        )


class EmptyInputError(PricingError):
    """Aggregation was asked to fold zero coins."""

    def __init__(self, message: str = "Cannot aggregate market conditions over zero coins"):
        super().__init__(message)
