from __future__ import annotations

from typing import Any


def nonempty(s: Any) -> bool:
    return bool(s and str(s).strip())


def nonneg_int(s: Any) -> bool:
    try:
        return int(s) >= 0
    except Exception:
        return False


def pos_int(s: Any) -> bool:
    try:
        return int(s) > 0
    except Exception:
        return False


def is_amount(s: Any) -> bool:
    """Whole, non-negative currency amount (bool is rejected)."""
    return isinstance(s, int) and not isinstance(s, bool) and s >= 0
