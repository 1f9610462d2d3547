"""
Market scoring: liquidity, volatility, trend, recommendation and risk.

Volume trend, momentum and volume volatility are proxies derived from the
24h price change and current volume alone. They stand in for real
historical series and are kept as-is because they shape the outputs.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from coin_pricing.schemas import CoinSnapshot, MarketScore, RiskAssessment, TradingSignal
from coin_pricing.services.curve import BondingCurve, hours_since, utc_now
from coin_pricing.utils.units import to_whole_units

logger = logging.getLogger(__name__)

# ── Liquidity score weights ──
_VOLUME_POINTS_MAX = 40.0
_VOLUME_POINTS_DIVISOR = 10.0
_CAP_POINTS_MAX = 30.0
_CAP_POINTS_DIVISOR = 100.0

# (max hours since last trade, points); anything older scores _STALE_POINTS
_RECENCY_TIERS = [(1.0, 20.0), (24.0, 15.0), (168.0, 10.0)]
_STALE_POINTS = 5.0

# (max |24h change| in percent, points); anything wilder scores _WILD_POINTS
_STABILITY_TIERS = [(5.0, 10.0), (10.0, 7.0), (20.0, 4.0)]
_WILD_POINTS = 1.0

# ── Recommendation ──
_DIVERGENCE_THRESHOLD = 0.10
_MIN_TRADABLE_LIQUIDITY = 50.0

# ── Risk ──
_HIGH_VOLATILITY = 70.0
_MODERATE_VOLATILITY = 40.0
_LOW_LIQUIDITY = 30.0
_EXTREME_MOVE_PCT = 50.0
_LOW_VOLUME = 1.0

_RISK_ORDER = ["low", "medium", "high"]


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def _raise_to(level: str, floor: str) -> str:
    return max(level, floor, key=_RISK_ORDER.index)


def _escalate(level: str) -> str:
    return _RISK_ORDER[min(_RISK_ORDER.index(level) + 1, len(_RISK_ORDER) - 1)]


def _tier_points(value: float, tiers, fallback: float) -> float:
    for limit, points in tiers:
        if value < limit:
            return points
    return fallback


def price_difference(custom_price: int, amm_price: Optional[int]) -> float:
    """Relative gap of the curve price over the AMM price; 0.0 without a usable AMM price."""
    if not amm_price:
        return 0.0
    return (custom_price - amm_price) / amm_price


class MarketScorer:
    """Derives a MarketScore for a coin from its snapshot and the curve price."""

    def __init__(self, curve: BondingCurve, clock: Optional[Callable[[], datetime]] = None):
        self.curve = curve
        self.clock = clock or utc_now

    def liquidity_score(self, snapshot: CoinSnapshot, now: Optional[datetime] = None) -> float:
        """0-100: volume (40) + market cap (30) + recency (20) + price stability (10)."""
        score = min(to_whole_units(snapshot.trading_volume_24h) / _VOLUME_POINTS_DIVISOR, _VOLUME_POINTS_MAX)
        score += min(to_whole_units(snapshot.market_cap) / _CAP_POINTS_DIVISOR, _CAP_POINTS_MAX)

        if snapshot.last_trade_at is not None:
            idle_hours = hours_since(snapshot.last_trade_at, now or self.clock())
            score += _tier_points(idle_hours, _RECENCY_TIERS, _STALE_POINTS)

        score += _tier_points(abs(snapshot.price_change_24h), _STABILITY_TIERS, _WILD_POINTS)
        return min(score, 100.0)

    @staticmethod
    def volume_volatility(snapshot: CoinSnapshot) -> float:
        current = float(snapshot.trading_volume_24h)
        if current <= 0:
            return 0.0
        # assumes the average volume is 80% of today's
        average = current * 0.8
        return abs(current - average) / average * 100

    def volatility_score(self, snapshot: CoinSnapshot) -> float:
        return min(abs(snapshot.price_change_24h) * 2 + self.volume_volatility(snapshot), 100.0)

    @staticmethod
    def trend_score(snapshot: CoinSnapshot) -> float:
        change = snapshot.price_change_24h
        volume_trend = change * 0.5
        momentum = change * 0.3
        return _clamp(change + volume_trend + momentum, -100.0, 100.0)

    @staticmethod
    def recommendation(difference: float, liquidity: float) -> str:
        # thin markets make divergence unreliable, so liquidity gates both sides
        if liquidity <= _MIN_TRADABLE_LIQUIDITY:
            return "hold"
        if difference > _DIVERGENCE_THRESHOLD:
            return "buy"
        if difference < -_DIVERGENCE_THRESHOLD:
            return "sell"
        return "hold"

    @staticmethod
    def confidence(snapshot: CoinSnapshot, difference: float, liquidity: float) -> float:
        divergence = min(abs(difference) * 200, 50.0)
        volume = min(to_whole_units(snapshot.trading_volume_24h) / 100, 20.0)
        return min(divergence + liquidity * 0.3 + volume, 100.0)

    @staticmethod
    def assess_risk(snapshot: CoinSnapshot, volatility: float, liquidity: float) -> RiskAssessment:
        """Risk only ever escalates within one call; 'high' is never downgraded."""
        factors: List[str] = []
        level = "low"

        if volatility > _HIGH_VOLATILITY:
            factors.append("High price volatility")
            level = _raise_to(level, "high")
        elif volatility > _MODERATE_VOLATILITY:
            factors.append("Moderate price volatility")
            level = _raise_to(level, "medium")

        if liquidity < _LOW_LIQUIDITY:
            factors.append("Low liquidity")
            level = _escalate(level)

        if abs(snapshot.price_change_24h) > _EXTREME_MOVE_PCT:
            factors.append("Extreme price movement")
            level = _raise_to(level, "high")

        if to_whole_units(snapshot.trading_volume_24h) < _LOW_VOLUME:
            factors.append("Low trading volume")
            level = _escalate(level)

        if not factors:
            factors.append("Stable market conditions")

        return RiskAssessment(level=level, factors=factors)

    def score(self, snapshot: CoinSnapshot) -> MarketScore:
        """
        Score any well-formed snapshot. A supply the curve cannot price leaves
        the custom price at 0, so the recommendation holds, and is reported
        as a risk factor instead of raising.
        """
        now = self.clock()
        supply = snapshot.circulating_supply
        in_curve_range = 0 <= supply < self.curve.total_supply_cap
        if in_curve_range:
            custom_price = self.curve.price(supply, snapshot, now).price
            difference = price_difference(custom_price, snapshot.amm_price)
        else:
            logger.warning(
                f"Supply {supply} of {snapshot.symbol or snapshot.address or 'coin'} is outside "
                f"the curve range [0, {self.curve.total_supply_cap}); custom price unavailable"
            )
            custom_price = 0
            difference = 0.0

        liquidity = self.liquidity_score(snapshot, now)
        volatility = self.volatility_score(snapshot)
        risk = self.assess_risk(snapshot, volatility, liquidity)
        if not in_curve_range:
            factors = [f for f in risk.factors if f != "Stable market conditions"]
            factors.append("Supply outside curve range")
            risk = RiskAssessment(level=_escalate(risk.level), factors=factors)

        result = MarketScore(
            liquidity_score=liquidity,
            volatility_score=volatility,
            trend_score=self.trend_score(snapshot),
            recommendation=self.recommendation(difference, liquidity),
            confidence=self.confidence(snapshot, difference, liquidity),
            risk_level=risk.level,
            risk_factors=risk.factors,
            custom_price=custom_price,
            amm_price=snapshot.amm_price,
            price_difference=difference,
        )
        logger.debug(
            f"Scored {snapshot.symbol or snapshot.address or 'coin'}: "
            f"{result.recommendation} ({result.confidence:.1f}%), risk={result.risk_level}"
        )
        return result

    def trading_signal(self, snapshot: CoinSnapshot) -> TradingSignal:
        """Heuristic buy/sell/hold from volume, price movement, liquidity and activity."""
        now = self.clock()
        liquidity = self.liquidity_score(snapshot, now)
        reasoning: List[str] = []
        recommendation = "hold"
        confidence = 0.5

        volume = to_whole_units(snapshot.trading_volume_24h)
        if volume > 100:
            reasoning.append("High trading volume indicates strong interest")
            confidence += 0.2
        elif volume < 1:
            reasoning.append("Low trading volume may indicate lack of interest")
            confidence -= 0.1

        change = snapshot.price_change_24h
        if change > 10:
            reasoning.append("Strong positive price movement")
            recommendation = "buy"
            confidence += 0.3
        elif change < -10:
            reasoning.append("Negative price movement")
            recommendation = "sell"
            confidence += 0.2

        if liquidity > 70:
            reasoning.append("High liquidity score - good for trading")
            confidence += 0.1
        elif liquidity < 30:
            reasoning.append("Low liquidity score - be cautious")
            confidence -= 0.1

        if snapshot.last_trade_at is not None and hours_since(snapshot.last_trade_at, now) > 168:
            reasoning.append("No recent trading activity - coin may be inactive")
            confidence -= 0.2

        return TradingSignal(
            recommendation=recommendation,
            confidence=_clamp(confidence, 0.0, 1.0),
            reasoning=reasoning,
        )
