"""
Bonding curve pricing for creator coins.

    price = k * supply^2 / (total_supply_cap - supply)

The curve is convex and strictly increasing on [0, cap) and diverges at the
cap, so exhausting supply is self-limiting. k is not fixed: it is adjusted
per evaluation from the coin's volume, inactivity and market cap.

Multiplier math runs in float; the result is floored to a ×10^18 integer
exactly once, at the end.
"""

import math
from datetime import datetime, timezone
from typing import Optional

from coin_pricing.errors import InvalidSupplyError
from coin_pricing.schemas import CoinSnapshot, CurveParameters, CurveState, PriceResult
from coin_pricing.utils.units import WEI, to_whole_units

# ── Dynamic-k thresholds (whole-coin units) ──
_HIGH_VOLUME = 100.0
_LOW_VOLUME = 1.0
_POPULAR_MARKET_CAP = 1000.0

_HIGH_VOLUME_K = 1.2
_LOW_VOLUME_K = 0.8
_POPULARITY_K = 1.1

# k never drops below this fraction of base_k
_K_FLOOR_RATIO = 0.1

_DECAY_PERIOD_HOURS = 24.0


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def hours_since(moment: datetime, now: datetime) -> float:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (now - moment).total_seconds() / 3600.0


class BondingCurve:
    """Supply → price function for one curve profile. Stateless apart from its parameters."""

    def __init__(self, params: Optional[CurveParameters] = None):
        self.params = params or CurveParameters()

    @property
    def total_supply_cap(self) -> int:
        return self.params.total_supply_cap

    def dynamic_k(self, snapshot: Optional[CoinSnapshot] = None, now: Optional[datetime] = None) -> float:
        """
        Adjust base_k by volume, inactivity decay and popularity.

        Each factor only applies when its signal is present on the snapshot.
        The result is floored at base_k * 0.1.
        """
        base_k = self.params.base_k
        k = base_k
        if snapshot is None:
            return k

        volume = to_whole_units(snapshot.trading_volume_24h)
        if volume > _HIGH_VOLUME:
            k *= _HIGH_VOLUME_K
        elif volume < _LOW_VOLUME:
            k *= _LOW_VOLUME_K

        if snapshot.last_trade_at is not None:
            idle_hours = hours_since(snapshot.last_trade_at, now or utc_now())
            if idle_hours > _DECAY_PERIOD_HOURS:
                idle_days = math.floor(idle_hours / _DECAY_PERIOD_HOURS)
                k *= self.params.time_decay_factor ** idle_days

        if to_whole_units(snapshot.market_cap) > _POPULAR_MARKET_CAP:
            k *= _POPULARITY_K

        return max(k, base_k * _K_FLOOR_RATIO)

    def _check_supply(self, supply: int) -> None:
        if supply < 0 or supply >= self.params.total_supply_cap:
            raise InvalidSupplyError(supply, self.params.total_supply_cap)

    def price(
        self,
        supply: int,
        snapshot: Optional[CoinSnapshot] = None,
        now: Optional[datetime] = None,
    ) -> PriceResult:
        """Curve price at `supply`, ×10^18 and floored. Raises InvalidSupplyError outside [0, cap)."""
        self._check_supply(supply)

        k = self.dynamic_k(snapshot, now)
        # exact int subtraction first: near the cap the float difference collapses
        remaining = float(self.params.total_supply_cap - supply)
        base_price = k * float(supply) ** 2 / remaining

        value = base_price * self.params.creator_multiplier
        value *= self.params.volume_multiplier

        return PriceResult(supply=supply, price=math.floor(value * WEI), dynamic_k=k)

    def coins_for_amount(
        self,
        supply: int,
        amount: int,
        snapshot: Optional[CoinSnapshot] = None,
        now: Optional[datetime] = None,
    ) -> int:
        """Coins purchasable with `amount` base units of the quote currency at the spot price."""
        price = self.price(supply, snapshot, now).price
        if price == 0:
            # an empty curve has no finite coins-per-unit rate
            raise InvalidSupplyError(supply, self.params.total_supply_cap)
        return amount * WEI // price

    def amount_for_coins(
        self,
        supply: int,
        coins: int,
        snapshot: Optional[CoinSnapshot] = None,
        now: Optional[datetime] = None,
    ) -> int:
        """Quote-currency base units needed for `coins` at the spot price."""
        return coins * self.price(supply, snapshot, now).price // WEI

    def market_cap(
        self,
        supply: int,
        snapshot: Optional[CoinSnapshot] = None,
        now: Optional[datetime] = None,
    ) -> int:
        return supply * self.price(supply, snapshot, now).price // WEI

    def price_change(
        self,
        current_supply: int,
        previous_supply: int,
        current_snapshot: Optional[CoinSnapshot] = None,
        previous_snapshot: Optional[CoinSnapshot] = None,
        now: Optional[datetime] = None,
    ) -> float:
        """Fractional price change between two curve positions (0.1 == +10%)."""
        current = self.price(current_supply, current_snapshot, now).price
        previous = self.price(previous_supply, previous_snapshot, now).price
        if previous == 0:
            raise InvalidSupplyError(previous_supply, self.params.total_supply_cap)
        return (current - previous) / previous

    def curve_state(
        self,
        supply: int,
        snapshot: Optional[CoinSnapshot] = None,
        now: Optional[datetime] = None,
    ) -> CurveState:
        result = self.price(supply, snapshot, now)
        return CurveState(
            k=result.dynamic_k,
            total_supply=self.params.total_supply_cap,
            current_supply=supply,
            current_price=result.price,
        )
