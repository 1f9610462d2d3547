"""
Pricing engine: one entry point that prices a coin on the bonding curve,
scores it against the AMM feed and derives trade sizing and price targets.

The engine holds no market state between calls. Callers pass a fresh
CoinSnapshot per evaluation and keep whatever MarketConditions they need.
"""

import logging
import math
from datetime import datetime
from typing import Callable, Optional, Sequence

import numpy as np

from coin_pricing.errors import InvalidTradeError
from coin_pricing.schemas import (
    CoinSnapshot,
    ImpactEstimate,
    MarketConditions,
    PriceTargets,
    PricingReport,
    TradeQuote,
)
from coin_pricing.services.aggregation import aggregate
from coin_pricing.services.curve import BondingCurve, utc_now
from coin_pricing.services.quotes import QuoteCalculator, price_impact
from coin_pricing.services.scoring import MarketScorer
from coin_pricing.utils.formatting import format_percentage

logger = logging.getLogger(__name__)

# Heuristic sizing: 0.1% of circulating supply, scaled by liquidity
_BASE_SIZE_FRACTION = 1 / 1000

# (trend weight, volatility divisor) per horizon
_TARGET_HORIZONS = {
    "one_hour": (0.001, 1000.0),
    "twenty_four_hours": (0.01, 100.0),
    "seven_days": (0.05, 10.0),
}


class PricingEngine:
    def __init__(
        self,
        curve: Optional[BondingCurve] = None,
        rng: Optional[np.random.Generator] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.curve = curve or BondingCurve()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.clock = clock or utc_now
        self.quotes = QuoteCalculator(self.curve, rng=self.rng, clock=self.clock)
        self.scorer = MarketScorer(self.curve, clock=self.clock)

    def evaluate(self, snapshot: CoinSnapshot) -> PricingReport:
        """Full pricing report for one coin."""
        score = self.scorer.score(snapshot)

        report = PricingReport(
            amm_price=snapshot.amm_price,
            custom_price=score.custom_price,
            price_difference=score.price_difference,
            score=score,
            optimal_trade_size=self.heuristic_trade_size(snapshot, score.liquidity_score),
            targets=self.price_targets(snapshot, score.custom_price),
        )
        logger.debug(f"Evaluated {snapshot.symbol or snapshot.address or 'coin'}: {self.summary(report)}")
        return report

    @staticmethod
    def heuristic_trade_size(snapshot: CoinSnapshot, liquidity_score: float) -> int:
        size = snapshot.circulating_supply * _BASE_SIZE_FRACTION * (liquidity_score / 100)
        return math.floor(size)

    def price_targets(self, snapshot: CoinSnapshot, current_price: int) -> PriceTargets:
        """
        Trend-driven price targets with volatility-scaled noise.

        These are illustrative projections, not forecasts. Multipliers are
        floored at zero so a steep downtrend cannot produce a negative price.
        """
        trend = self.scorer.trend_score(snapshot)
        volatility = self.scorer.volatility_score(snapshot)

        targets = {}
        for name, (trend_weight, vol_divisor) in _TARGET_HORIZONS.items():
            noise = (self.rng.random() - 0.5) * (volatility / vol_divisor)
            multiplier = max(1 + trend * trend_weight + noise, 0.0)
            targets[name] = math.floor(current_price * multiplier)
        return PriceTargets(**targets)

    def price_impact(self, snapshot: CoinSnapshot, trade_amount: int, is_buy: bool) -> ImpactEstimate:
        """
        Impact of a trade measured against the AMM price (percent, signed).

        Falls back to the curve's own spot price when no AMM price is known.
        """
        supply = snapshot.circulating_supply
        new_supply = supply + trade_amount if is_buy else supply - trade_amount
        if trade_amount < 0 or new_supply < 0 or new_supply >= self.curve.total_supply_cap:
            raise InvalidTradeError(
                f"Invalid trade amount: resulting supply {new_supply} is outside "
                f"[0, {self.curve.total_supply_cap})",
                current_supply=supply,
                trade_amount=trade_amount,
            )

        now = self.clock()
        reference = snapshot.amm_price
        if not reference:
            reference = self.curve.price(supply, snapshot, now).price
        new_price = self.curve.price(new_supply, snapshot, now).price

        impact = price_impact(reference, new_price, is_buy=True) * 100
        return ImpactEstimate(price_impact=impact, new_price=new_price, slippage=abs(impact))

    def quote(self, snapshot: CoinSnapshot, trade_amount: int, is_buy: bool) -> TradeQuote:
        return self.quotes.quote(snapshot.circulating_supply, trade_amount, is_buy, snapshot)

    def optimal_trade_size(self, snapshot: CoinSnapshot, max_impact: float = 0.01) -> int:
        return self.quotes.optimal_trade_size(snapshot.circulating_supply, max_impact, snapshot)

    @staticmethod
    def market_conditions(coins: Sequence[CoinSnapshot]) -> MarketConditions:
        return aggregate(coins)

    @staticmethod
    def summary(report: PricingReport) -> str:
        confidence = report.score.confidence
        difference = report.price_difference * 100
        if report.recommendation == "buy":
            return (
                f"Strong buy opportunity with {confidence:.0f}% confidence. "
                f"Custom pricing suggests {format_percentage(difference)} undervaluation."
            )
        if report.recommendation == "sell":
            return (
                f"Sell opportunity with {confidence:.0f}% confidence. "
                f"Custom pricing suggests {format_percentage(abs(difference))} overvaluation."
            )
        return f"Hold position. Market conditions are neutral with {confidence:.0f}% confidence."
