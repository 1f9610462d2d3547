from coin_pricing.errors import (
    EmptyInputError,
    InvalidSupplyError,
    InvalidTradeError,
    PricingError,
    SlippageExceededError,
)
from coin_pricing.profiles import CURVE_PROFILES, get_curve_parameters
from coin_pricing.schemas import (
    CoinSnapshot,
    CurveParameters,
    MarketConditions,
    MarketScore,
    PriceResult,
    PricingReport,
    TradeQuote,
)
from coin_pricing.services import BondingCurve, MarketScorer, PricingEngine, QuoteCalculator, aggregate

__version__ = "0.1.0"
