# expediter/aggregates.py
"""Derived figures: checklist progress, proposal totals, invoice balances."""

from __future__ import annotations

import math
from typing import Iterable


def item_price(item: dict) -> float:
    """Price of a checklist item for summing.

    ``None`` means the item has not been priced yet; it contributes nothing
    to totals but is rendered as "TBD" rather than "$0.00".
    """
    price = item.get('price')
    return float(price) if price is not None else 0.0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_progress(items: Iterable[dict]) -> int:
    """Percentage of completed items, rounded half up; 0 for no items."""
    items = list(items)
    if not items:
        return 0
    completed = sum(1 for i in items if i.get('completed'))
    return round_half_up(100 * completed / len(items))


def proposal_item_total(item: dict) -> float:
    return float(item.get('quantity') or 0) * float(item.get('unit_price') or 0)


def proposal_total(items: Iterable[dict]) -> float:
    return sum(proposal_item_total(i) for i in items)


def invoice_summary(items: Iterable[dict]) -> dict:
    items = list(items)
    total_cost = sum(item_price(i) for i in items)
    completed_cost = sum(item_price(i) for i in items if i.get('completed'))
    return {
        'total_cost': total_cost,
        'completed_cost': completed_cost,
        'balance_due': total_cost - completed_cost,
        'priced_items': sum(1 for i in items if i.get('price') is not None),
        'unpriced_items': sum(1 for i in items if i.get('price') is None),
        'progress': calculate_progress(items),
    }


def format_currency(value: float) -> str:
    amount = float(value or 0)
    sign = '-' if amount < 0 else ''
    return f"{sign}${abs(amount):,.2f}"


def format_price(price) -> str:
    return 'TBD' if price is None else format_currency(price)
