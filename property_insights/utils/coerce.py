import math
from typing import Any, Optional

_NULL_STRINGS = {"", "null", "none", "nan", "n/a", "na", "unknown"}


def is_blank(v: Any) -> bool:
    if v is None:
        return True
    if isinstance(v, float) and math.isnan(v):
        return True
    return isinstance(v, str) and v.strip().lower() in _NULL_STRINGS


def to_int(v) -> Optional[int]:
    try:
        if is_blank(v) or isinstance(v, bool):
            return None
        return int(float(str(v).replace(",", "")))
    except Exception:
        return None


def to_float(v) -> Optional[float]:
    try:
        if is_blank(v) or isinstance(v, bool):
            return None
        value = float(str(v).replace(",", "").replace("$", ""))
    except Exception:
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def to_str(v) -> str:
    if v is None or (isinstance(v, float) and math.isnan(v)):
        return ""
    return str(v).strip()
