import math
from datetime import datetime
from typing import Any

# Largest integer a JSON consumer using IEEE doubles can hold exactly
_MAX_SAFE_INT = 2**53 - 1


def sanitize_floats(obj):
    """Recursively replace NaN/Infinity with None in nested structures."""
    if isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            return None
        return obj
    if isinstance(obj, dict):
        return {k: sanitize_floats(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [sanitize_floats(v) for v in obj]
    return obj


def stringify_big_ints(obj: Any):
    """Recursively render ints outside the double-safe range as decimal strings."""
    if isinstance(obj, bool):
        return obj
    if isinstance(obj, int):
        return str(obj) if abs(obj) > _MAX_SAFE_INT else obj
    if isinstance(obj, dict):
        return {k: stringify_big_ints(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [stringify_big_ints(v) for v in obj]
    return obj


def sanitize_payload(obj: Any):
    """Make a model dump safe for json.dumps(..., allow_nan=False)."""
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {k: sanitize_payload(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [sanitize_payload(v) for v in obj]
    return stringify_big_ints(sanitize_floats(obj))
