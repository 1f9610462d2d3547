"""
Quote calculator tests: impact, slippage bounds, fees, deadlines and sizing.
Run with: python3 -m pytest tests/test_quotes.py -v
"""

import math
import os
import sys
from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from coin_pricing.errors import InvalidSupplyError, InvalidTradeError, SlippageExceededError
from coin_pricing.profiles import get_curve_parameters
from coin_pricing.schemas import CoinSnapshot, CurveParameters
from coin_pricing.services.curve import BondingCurve
from coin_pricing.services.quotes import QuoteCalculator, price_impact
from coin_pricing.utils.units import WEI


NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
CAP = 1_000_000_000
SUPPLY = 500_000_000


# ── Helpers ──────────────────────────────────────────────────────────────────

def make_snapshot(**overrides) -> CoinSnapshot:
    defaults = dict(
        circulating_supply=SUPPLY,
        total_supply=CAP,
        market_cap=500 * WEI,
        trading_volume_24h=50 * WEI,
        price_change_24h=0.0,
        last_trade_at=NOW - timedelta(minutes=5),
    )
    defaults.update(overrides)
    return CoinSnapshot(**defaults)


def make_calculator(seed: int = 42, params: CurveParameters = None) -> QuoteCalculator:
    curve = BondingCurve(params or CurveParameters(total_supply_cap=CAP))
    return QuoteCalculator(curve, rng=np.random.default_rng(seed), clock=lambda: NOW)


# ── Price impact ─────────────────────────────────────────────────────────────

def test_price_impact_direction():
    assert price_impact(100, 110, is_buy=True) == pytest.approx(0.10)
    assert price_impact(110, 100, is_buy=False) == pytest.approx(10 / 110)


def test_price_impact_from_empty_curve_is_unbounded():
    assert price_impact(0, 5, is_buy=True) == math.inf
    assert price_impact(0, 0, is_buy=True) == 0.0


def test_buy_quote_has_positive_impact():
    quote = make_calculator().quote(SUPPLY, 1000, is_buy=True)
    assert quote.price_impact > 0
    assert quote.is_buy is True


def test_buy_from_zero_supply_impact_positive_and_rejected():
    """Any buy off an empty curve has infinite impact, which no slippage bound admits."""
    with pytest.raises(SlippageExceededError) as exc_info:
        make_calculator().quote(0, 1000, is_buy=True)
    assert exc_info.value.price_impact > 0
    assert exc_info.value.price_impact == math.inf


def test_sell_back_impact_not_larger_than_buy():
    calc = make_calculator()
    buy = calc.quote(SUPPLY, 100_000, is_buy=True)
    sell = calc.quote(SUPPLY + 100_000, 100_000, is_buy=False)
    assert buy.price_impact > 0
    assert sell.price_impact > 0
    assert sell.price_impact <= buy.price_impact


# ── Amounts and fees ─────────────────────────────────────────────────────────

def test_quote_amounts_use_spot_price():
    calc = make_calculator()
    current_price = calc.curve.price(SUPPLY).price
    quote = calc.quote(SUPPLY, 1000, is_buy=True)

    assert quote.input_amount == 1000
    assert quote.output_amount == 1000 * current_price // WEI
    assert quote.fee == quote.output_amount * 100 // 10_000
    assert quote.minimum_received == quote.output_amount - quote.fee
    assert quote.fee_rate == pytest.approx(0.01)


def test_sell_quote_uses_same_output_expression():
    calc = make_calculator()
    current_price = calc.curve.price(SUPPLY).price
    quote = calc.quote(SUPPLY, 1000, is_buy=False)
    assert quote.output_amount == 1000 * current_price // WEI
    assert quote.is_buy is False


def test_liquid_coin_fee_applied_in_quote():
    calc = make_calculator()
    snap = make_snapshot(trading_volume_24h=150 * WEI)
    quote = calc.quote(SUPPLY, 1000, is_buy=True, snapshot=snap)
    assert quote.fee == quote.output_amount * 75 // 10_000


@pytest.mark.parametrize(
    "volume, market_cap, expected",
    [
        (50 * WEI, 500 * WEI, 0.01),
        (150 * WEI, 500 * WEI, 0.0075),
        (2000 * WEI, 500 * WEI, 0.005),
        (50 * WEI, WEI // 2, 0.02),
        (2000 * WEI, WEI // 2, 0.01),
    ],
)
def test_fee_rate_schedule(volume, market_cap, expected):
    snap = make_snapshot(trading_volume_24h=volume, market_cap=market_cap)
    assert make_calculator().fee_rate(snap) == pytest.approx(expected)


def test_fee_rate_without_snapshot():
    assert make_calculator().fee_rate() == pytest.approx(0.01)


def test_zero_amount_quote():
    quote = make_calculator().quote(SUPPLY, 0, is_buy=True)
    assert quote.price_impact == 0.0
    assert quote.output_amount == 0
    assert quote.fee == 0


# ── Slippage ─────────────────────────────────────────────────────────────────

def test_adjusted_slippage_defaults_to_profile():
    assert make_calculator().adjusted_max_slippage() == pytest.approx(0.05)


def test_adjusted_slippage_stricter_for_liquid_coins():
    snap = make_snapshot(trading_volume_24h=150 * WEI)
    assert make_calculator().adjusted_max_slippage(snap) == pytest.approx(0.04)


def test_adjusted_slippage_looser_for_new_coins():
    snap = make_snapshot(market_cap=5 * WEI)
    assert make_calculator().adjusted_max_slippage(snap) == pytest.approx(0.075)


def test_adjusted_slippage_capped():
    calc = make_calculator(params=get_curve_parameters("new_coin"))
    snap = make_snapshot(market_cap=5 * WEI)
    # 0.08 * 1.5 = 0.12 → ceiling
    assert calc.adjusted_max_slippage(snap) == pytest.approx(0.10)


def test_large_trade_exceeds_slippage():
    calc = make_calculator()
    with pytest.raises(SlippageExceededError) as exc_info:
        calc.quote(SUPPLY, CAP - SUPPLY - 1, is_buy=True)
    err = exc_info.value
    assert err.price_impact > err.max_slippage
    assert err.max_slippage == pytest.approx(0.05)


def test_slippage_bound_tightens_with_volume():
    """A trade inside the plain bound but above the liquid-coin bound is rejected only for the liquid coin."""
    calc = make_calculator()
    # impact per unit near 5e8 is roughly 6e-9, so ~7.5M units is ~4.5%
    amount = 7_500_000
    plain = calc.quote(SUPPLY, amount, is_buy=True)
    assert 0.04 < plain.price_impact < 0.05

    liquid = make_snapshot(trading_volume_24h=150 * WEI)
    with pytest.raises(SlippageExceededError):
        calc.quote(SUPPLY, amount, is_buy=True, snapshot=liquid)


# ── Invalid trades ───────────────────────────────────────────────────────────

def test_buy_to_cap_is_invalid():
    with pytest.raises(InvalidTradeError) as exc_info:
        make_calculator().quote(SUPPLY, CAP - SUPPLY, is_buy=True)
    assert exc_info.value.current_supply == SUPPLY
    assert exc_info.value.trade_amount == CAP - SUPPLY


def test_sell_more_than_supply_is_invalid():
    with pytest.raises(InvalidTradeError):
        make_calculator().quote(1000, 1001, is_buy=False)


def test_negative_amount_is_invalid():
    with pytest.raises(InvalidTradeError):
        make_calculator().quote(SUPPLY, -5, is_buy=True)


def test_current_supply_outside_domain():
    with pytest.raises(InvalidSupplyError):
        make_calculator().quote(CAP, 1, is_buy=False)


# ── Deadline ─────────────────────────────────────────────────────────────────

def test_deadline_window():
    base = int(NOW.timestamp()) + 1800
    for seed in range(20):
        deadline = make_calculator(seed=seed).quote(SUPPLY, 1000, is_buy=True).deadline
        assert base <= deadline < base + 300


def test_seeded_quotes_are_deterministic():
    a = make_calculator(seed=7).quote(SUPPLY, 1000, is_buy=True)
    b = make_calculator(seed=7).quote(SUPPLY, 1000, is_buy=True)
    assert a == b


def test_quote_expiry():
    quote = make_calculator().quote(SUPPLY, 1000, is_buy=True)
    assert not quote.is_expired(NOW)
    assert quote.is_expired(NOW + timedelta(hours=1))


def test_quote_is_immutable():
    quote = make_calculator().quote(SUPPLY, 1000, is_buy=True)
    with pytest.raises(Exception):
        quote.fee = 0


# ── Optimal trade size ───────────────────────────────────────────────────────

def test_optimal_trade_size_is_largest_within_impact():
    calc = make_calculator()
    size = calc.optimal_trade_size(SUPPLY, max_impact=0.01)

    current = calc.curve.price(SUPPLY).price
    max_price = current * math.floor(1.01 * WEI) // WEI
    assert 0 < size < CAP - SUPPLY
    assert calc.curve.price(SUPPLY + size).price <= max_price
    assert calc.curve.price(SUPPLY + size + 1).price > max_price


def test_optimal_trade_size_grows_with_tolerance():
    calc = make_calculator()
    assert calc.optimal_trade_size(SUPPLY, 0.02) >= calc.optimal_trade_size(SUPPLY, 0.01)


def test_optimal_trade_size_on_empty_curve():
    assert make_calculator().optimal_trade_size(0, 0.01) == 0


def test_optimal_trade_size_never_reaches_cap():
    calc = make_calculator()
    size = calc.optimal_trade_size(CAP - 10, max_impact=1e6)
    assert size <= 9
