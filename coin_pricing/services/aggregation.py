import logging
from typing import Sequence

import numpy as np

from coin_pricing.errors import EmptyInputError
from coin_pricing.schemas import CoinSnapshot, MarketConditions

logger = logging.getLogger(__name__)

_BULLISH_CHANGE = 5.0
_BEARISH_CHANGE = -5.0


def overall_trend(average_price_change: float) -> str:
    if average_price_change > _BULLISH_CHANGE:
        return "bullish"
    if average_price_change < _BEARISH_CHANGE:
        return "bearish"
    return "neutral"


def aggregate(coins: Sequence[CoinSnapshot]) -> MarketConditions:
    """
    Fold coin snapshots into market-wide conditions.

    Caps and volumes are summed as Python ints, so 256-bit values never
    overflow. The result is a fresh snapshot; nothing is cached between calls.
    """
    coins = list(coins)
    if not coins:
        raise EmptyInputError()

    total_market_cap = sum(c.market_cap for c in coins)
    total_volume = sum(c.trading_volume_24h for c in coins)
    changes = np.array([c.price_change_24h for c in coins], dtype=float)
    average_change = float(np.mean(changes))

    conditions = MarketConditions(
        overall_trend=overall_trend(average_change),
        total_market_cap=total_market_cap,
        total_volume=total_volume,
        average_price_change=average_change,
        average_trade_size=total_volume // len(coins),
        # one trader per coin is a stand-in until trade-level data is supplied
        active_traders=len(coins),
        price_volatility=abs(average_change),
    )
    logger.debug(
        f"Aggregated {len(coins)} coins: trend={conditions.overall_trend}, "
        f"avg change={average_change:.2f}%"
    )
    return conditions
