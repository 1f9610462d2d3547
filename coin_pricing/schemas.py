from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from coin_pricing.utils.json_safety import sanitize_payload

# Base-unit amounts are unsigned 256-bit on chain
UINT256_MAX = 2**256 - 1

Recommendation = Literal["buy", "sell", "hold"]
RiskLevel = Literal["low", "medium", "high"]
Trend = Literal["bullish", "bearish", "neutral"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)

    def to_payload(self) -> dict:
        """JSON-safe dict: big ints as strings, NaN/Infinity as None."""
        return sanitize_payload(self.model_dump(mode="python"))


def _check_uint256(v, name):
    if v < 0 or v > UINT256_MAX:
        raise ValueError(f"{name} must be an unsigned 256-bit integer")
    return v


class CoinSnapshot(_Frozen):
    """Raw coin statistics supplied by the data provider for one evaluation."""

    circulating_supply: int
    total_supply: int
    market_cap: int = 0
    trading_volume_24h: int = 0
    price_change_24h: float = Field(0.0, allow_inf_nan=False)  # percent, +12.5 means +12.5%
    last_trade_at: Optional[datetime] = None

    # Identity and the external AMM reference price (×10^18).
    # amm_price is only read by the recommendation, never by the curve.
    address: Optional[str] = None
    symbol: Optional[str] = None
    amm_price: Optional[int] = None

    @field_validator("circulating_supply", "total_supply", "market_cap", "trading_volume_24h")
    @classmethod
    def uint256_fields(cls, v, info):
        return _check_uint256(v, info.field_name)

    @field_validator("amm_price")
    @classmethod
    def optional_uint256(cls, v, info):
        if v is None:
            return v
        return _check_uint256(v, info.field_name)

    @field_validator("last_trade_at")
    @classmethod
    def aware_timestamp(cls, v):
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode="after")
    def supply_below_total(self):
        if self.circulating_supply >= self.total_supply:
            raise ValueError(
                f"circulating_supply ({self.circulating_supply}) must be strictly "
                f"below total_supply ({self.total_supply})"
            )
        return self


class CurveParameters(_Frozen):
    base_k: float = 0.0001
    total_supply_cap: int = 1_000_000_000
    max_slippage: float = 0.05
    creator_multiplier: float = 1.0
    volume_multiplier: float = 1.0
    time_decay_factor: float = 0.95

    @field_validator("base_k", "creator_multiplier", "volume_multiplier")
    @classmethod
    def positive(cls, v, info):
        if v <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return v

    @field_validator("total_supply_cap")
    @classmethod
    def cap_range(cls, v):
        if v <= 0 or v > UINT256_MAX:
            raise ValueError("total_supply_cap must be a positive 256-bit integer")
        return v

    @field_validator("max_slippage")
    @classmethod
    def slippage_range(cls, v):
        if v <= 0 or v >= 1:
            raise ValueError("max_slippage must be in (0, 1)")
        return v

    @field_validator("time_decay_factor")
    @classmethod
    def decay_range(cls, v):
        if v <= 0 or v > 1:
            raise ValueError("time_decay_factor must be in (0, 1]")
        return v


class PriceResult(_Frozen):
    supply: int
    price: int  # ×10^18, floored
    dynamic_k: float


class CurveState(_Frozen):
    k: float
    total_supply: int
    current_supply: int
    current_price: int
    price_impact: float = 0.0


class TradeQuote(_Frozen):
    input_amount: int
    output_amount: int
    fee: int
    minimum_received: int
    price_impact: float
    deadline: int  # unix seconds
    is_buy: bool = True
    fee_rate: float = 0.01

    def is_expired(self, now: datetime = None) -> bool:
        """True once the deadline has passed; callers must re-quote."""
        now = now or datetime.now(timezone.utc)
        return now.timestamp() > self.deadline


class RiskAssessment(_Frozen):
    level: RiskLevel
    factors: List[str]


class MarketScore(_Frozen):
    liquidity_score: float = Field(ge=0, le=100)
    volatility_score: float = Field(ge=0, le=100)
    trend_score: float = Field(ge=-100, le=100)
    recommendation: Recommendation
    confidence: float = Field(ge=0, le=100)
    risk_level: RiskLevel
    risk_factors: List[str]
    custom_price: int
    amm_price: Optional[int] = None
    price_difference: float = 0.0


class TradingSignal(_Frozen):
    recommendation: Recommendation
    confidence: float = Field(ge=0, le=1)
    reasoning: List[str]


class MarketConditions(_Frozen):
    overall_trend: Trend
    total_market_cap: int
    total_volume: int
    average_price_change: float
    average_trade_size: int
    active_traders: int
    price_volatility: float


class PriceTargets(_Frozen):
    one_hour: int
    twenty_four_hours: int
    seven_days: int


class PricingReport(_Frozen):
    """Everything the engine derives for one coin in one evaluation."""

    amm_price: Optional[int] = None
    custom_price: int
    price_difference: float
    score: MarketScore
    optimal_trade_size: int
    targets: PriceTargets

    @property
    def recommendation(self) -> Recommendation:
        return self.score.recommendation

    @property
    def risk_level(self) -> RiskLevel:
        return self.score.risk_level


class ImpactEstimate(_Frozen):
    price_impact: float  # percent, signed against the reference price
    new_price: int
    slippage: float
