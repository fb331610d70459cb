from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from warung_pos.config import CURRENCY_PREFIX


# ---------------- Money ----------------
# Rupiah has no minor unit in daily use: every amount is a whole integer.

def to_amount(value: Any) -> int:
    """Coerce backend/user input to a whole amount, truncating fractions."""
    if value is None or value == "":
        return 0
    try:
        return int(Decimal(str(value)))
    except Exception:
        return 0


def round_half_up(value: Any) -> int:
    """Round to the nearest whole amount, .5 going up."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def money(value: Any) -> str:
    """'Rp 1.250.000' style; fractions are truncated, never rounded."""
    v = to_amount(value)
    sign = "-" if v < 0 else ""
    return f"{CURRENCY_PREFIX} {sign}{abs(v):,}".replace(",", ".")


# ---------------- Text ----------------
def truncate_text(text: str, max_len: int = 20, suffix: str = "…") -> str:
    text = str(text or "")
    if len(text) <= max_len:
        return text
    return text[: max(0, max_len - len(suffix))] + suffix
