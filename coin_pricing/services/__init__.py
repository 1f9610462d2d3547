from coin_pricing.services.aggregation import aggregate
from coin_pricing.services.curve import BondingCurve
from coin_pricing.services.engine import PricingEngine
from coin_pricing.services.quotes import QuoteCalculator
from coin_pricing.services.scoring import MarketScorer

__all__ = ["BondingCurve", "QuoteCalculator", "MarketScorer", "PricingEngine", "aggregate"]
