"""Display helpers for snapshot fields.

These take the snapshot's nested tag models (or anything with the same
attributes) and return short labels, or ``None`` when there is nothing to
show.
"""

import math
import re
from typing import Optional

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


def _compact(value: float, divisor: float, suffix: str) -> str:
    text = f"{value / divisor:.1f}"
    if text.endswith(".0"):
        text = text[:-2]
    return f"{text}{suffix}"


def format_money(amount: Optional[float], currency: Optional[str] = None) -> Optional[str]:
    """Format an amount compactly: 2000000 -> "2M", 1500 -> "1.5k".

    The currency is prefixed as given ("$" or "USD ").
    """
    if amount is None or (isinstance(amount, float) and math.isnan(amount)):
        return None

    magnitude = abs(amount)
    if magnitude >= 1_000_000:
        compact = _compact(amount, 1_000_000, "M")
    elif magnitude >= 1_000:
        compact = _compact(amount, 1_000, "k")
    else:
        compact = f"{amount:g}"
    return f"{currency or ''}{compact}".strip()


def revenue_label(revenue) -> Optional[str]:
    if revenue is None:
        return None
    if revenue.is_pre_revenue:
        return "Pre-revenue"
    amount = format_money(revenue.amount, revenue.currency)
    if amount:
        return f"{amount} {revenue.metric or 'Revenue'}".strip()
    return "Revenue"


def ask_label(ask) -> Optional[str]:
    if ask is None:
        return None
    amount = format_money(ask.amount, ask.currency)
    if not amount and not ask.round_type:
        return None
    if amount and ask.round_type:
        return f"Raising {amount} {ask.round_type}"
    if amount:
        return f"Raising {amount}"
    return f"Raising ({ask.round_type})"


def split_paragraphs(text: Optional[str]) -> list[str]:
    """Split free text on blank lines, dropping empty paragraphs."""
    return [p.strip() for p in _PARAGRAPH_BREAK.split(text or "") if p.strip()]
