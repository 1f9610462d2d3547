from typing import Dict

from coin_pricing.schemas import CurveParameters


DEFAULT_PROFILE = "default"

# Curve profiles — one parameter set per coin life stage
CURVE_PROFILES: Dict[str, Dict[str, float]] = {
    # base_k:             price sensitivity of the curve
    # total_supply_cap:   supply at which the curve diverges
    # max_slippage:       base price-impact tolerance before adjustment
    # creator_multiplier: flat premium for the creator
    # volume_multiplier:  flat premium for trading activity
    # time_decay_factor:  per-24h decay applied to k while inactive
    "default": {
        "base_k": 0.0001,
        "total_supply_cap": 1_000_000_000,
        "max_slippage": 0.05,
        "creator_multiplier": 1.0,
        "volume_multiplier": 1.0,
        "time_decay_factor": 0.95,
    },
    "new_coin": {
        "base_k": 0.0002,           # steeper: thin early supply
        "total_supply_cap": 1_000_000_000,
        "max_slippage": 0.08,       # new coins need room
        "creator_multiplier": 1.2,
        "volume_multiplier": 1.1,
        "time_decay_factor": 0.98,
    },
    "established_coin": {
        "base_k": 0.00005,
        "total_supply_cap": 1_000_000_000,
        "max_slippage": 0.03,
        "creator_multiplier": 1.0,
        "volume_multiplier": 0.9,
        "time_decay_factor": 0.99,
    },
}


def get_curve_parameters(profile: str = DEFAULT_PROFILE, **overrides) -> CurveParameters:
    """Build validated CurveParameters for a named profile, with optional overrides."""
    key = str(profile).lower().strip()
    if key not in CURVE_PROFILES:
        raise ValueError(
            f"Unknown curve profile '{profile}'. Must be one of: {', '.join(CURVE_PROFILES)}"
        )
    values = dict(CURVE_PROFILES[key])
    values.update(overrides)
    return CurveParameters(**values)
