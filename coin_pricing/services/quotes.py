import logging
import math
from datetime import datetime
from typing import Callable, Optional

import numpy as np

from coin_pricing.errors import InvalidTradeError, SlippageExceededError
from coin_pricing.schemas import CoinSnapshot, TradeQuote
from coin_pricing.services.curve import BondingCurve, utc_now
from coin_pricing.utils.units import WEI, to_whole_units

logger = logging.getLogger(__name__)

# ── Slippage adjustment ──
_LIQUID_VOLUME = 100.0          # whole units of 24h volume
_LIQUID_SLIPPAGE_MOD = 0.8      # stricter: large moves on liquid coins are suspicious
_NEW_COIN_MARKET_CAP = 10.0
_NEW_COIN_SLIPPAGE_MOD = 1.5    # lenient: new coins need room
_SLIPPAGE_CEILING = 0.10

# ── Fee schedule ──
_BASE_FEE_RATE = 0.01
_VERY_LIQUID_VOLUME = 1000.0
_VERY_LIQUID_FEE_MOD = 0.5
_LIQUID_FEE_MOD = 0.75
_TINY_MARKET_CAP = 1.0
_TINY_CAP_FEE_MOD = 2.0         # anti-manipulation on brand-new coins
_MIN_FEE_RATE = 0.005
_BPS = 10_000

# ── Deadline ──
# The jitter only makes expiry less predictable. It is a weak heuristic,
# not front-running protection, and the rng is not cryptographically secure.
_BASE_DEADLINE_S = 1800
_DEADLINE_JITTER_S = 300


def price_impact(current_price: int, new_price: int, is_buy: bool) -> float:
    """Fractional impact, positive is worse for the trader."""
    delta = new_price - current_price if is_buy else current_price - new_price
    if current_price == 0:
        # moving off an empty curve has unbounded relative impact
        if delta == 0:
            return 0.0
        return math.inf if delta > 0 else -math.inf
    return delta / current_price


class QuoteCalculator:
    """Slippage-bounded trade quotes against a BondingCurve."""

    def __init__(
        self,
        curve: BondingCurve,
        rng: Optional[np.random.Generator] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.curve = curve
        self.rng = rng if rng is not None else np.random.default_rng()
        self.clock = clock or utc_now

    def adjusted_max_slippage(self, snapshot: Optional[CoinSnapshot] = None) -> float:
        slippage = self.curve.params.max_slippage
        if snapshot is not None:
            if to_whole_units(snapshot.trading_volume_24h) > _LIQUID_VOLUME:
                slippage *= _LIQUID_SLIPPAGE_MOD
            if to_whole_units(snapshot.market_cap) < _NEW_COIN_MARKET_CAP:
                slippage *= _NEW_COIN_SLIPPAGE_MOD
        return min(slippage, _SLIPPAGE_CEILING)

    def fee_rate(self, snapshot: Optional[CoinSnapshot] = None) -> float:
        rate = _BASE_FEE_RATE
        if snapshot is not None:
            volume = to_whole_units(snapshot.trading_volume_24h)
            if volume > _VERY_LIQUID_VOLUME:
                rate *= _VERY_LIQUID_FEE_MOD
            elif volume > _LIQUID_VOLUME:
                rate *= _LIQUID_FEE_MOD
            if to_whole_units(snapshot.market_cap) < _TINY_MARKET_CAP:
                rate *= _TINY_CAP_FEE_MOD
        return max(rate, _MIN_FEE_RATE)

    def deadline(self, now: Optional[datetime] = None) -> int:
        now = now or self.clock()
        jitter = int(self.rng.integers(0, _DEADLINE_JITTER_S))
        return int(now.timestamp()) + _BASE_DEADLINE_S + jitter

    def quote(
        self,
        current_supply: int,
        trade_amount: int,
        is_buy: bool,
        snapshot: Optional[CoinSnapshot] = None,
    ) -> TradeQuote:
        """
        Quote a buy or sell of `trade_amount` coins at `current_supply`.

        Raises:
            InvalidTradeError: negative amount, or resulting supply outside [0, cap)
            InvalidSupplyError: current_supply itself is outside the curve domain
            SlippageExceededError: impact above the adjusted max slippage
        """
        if trade_amount < 0:
            raise InvalidTradeError(
                f"Trade amount must be >= 0, got {trade_amount}",
                current_supply=current_supply,
                trade_amount=trade_amount,
            )

        new_supply = current_supply + trade_amount if is_buy else current_supply - trade_amount
        cap = self.curve.total_supply_cap
        if new_supply < 0 or new_supply >= cap:
            logger.warning(
                f"Rejected {'buy' if is_buy else 'sell'} of {trade_amount}: "
                f"supply {current_supply} -> {new_supply} leaves [0, {cap})"
            )
            raise InvalidTradeError(
                f"Invalid trade amount: resulting supply {new_supply} is outside [0, {cap})",
                current_supply=current_supply,
                trade_amount=trade_amount,
            )

        now = self.clock()
        current_price = self.curve.price(current_supply, snapshot, now).price
        new_price = self.curve.price(new_supply, snapshot, now).price

        impact = price_impact(current_price, new_price, is_buy)
        max_slippage = self.adjusted_max_slippage(snapshot)
        if impact > max_slippage:
            logger.warning(
                f"Slippage exceeded at supply {current_supply}: "
                f"impact {impact:.4f} > max {max_slippage:.4f}"
            )
            raise SlippageExceededError(impact, max_slippage)

        # Spot-price output for both directions, not the curve integral
        output_amount = trade_amount * current_price // WEI

        rate = self.fee_rate(snapshot)
        # round, not floor: every schedule rate is a whole number of basis points,
        # so both agree unless a float product lands a hair below one
        fee = output_amount * round(rate * _BPS) // _BPS

        quote = TradeQuote(
            input_amount=trade_amount,
            output_amount=output_amount,
            fee=fee,
            minimum_received=output_amount - fee,
            price_impact=impact,
            deadline=self.deadline(now),
            is_buy=is_buy,
            fee_rate=rate,
        )
        logger.debug(
            f"Quoted {'buy' if is_buy else 'sell'} {trade_amount} at supply {current_supply}: "
            f"impact={impact:.6f} fee={fee} deadline={quote.deadline}"
        )
        return quote

    def optimal_trade_size(
        self,
        supply: int,
        max_impact: float = 0.01,
        snapshot: Optional[CoinSnapshot] = None,
    ) -> int:
        """
        Largest buy size whose resulting price stays within current * (1 + max_impact).

        Binary search is valid because price is strictly increasing in supply.
        """
        now = self.clock()
        current_price = self.curve.price(supply, snapshot, now).price
        max_price = current_price * math.floor((1 + max_impact) * WEI) // WEI

        low = 0
        high = self.curve.total_supply_cap - supply - 1
        best = 0
        while low <= high:
            mid = (low + high) // 2
            if self.curve.price(supply + mid, snapshot, now).price <= max_price:
                best = mid
                low = mid + 1
            else:
                high = mid - 1
        return best
