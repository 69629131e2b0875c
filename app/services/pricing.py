"""Slot pricing.

A court has a base hourly price and an ordered list of time-of-day rules.
The first rule whose window contains the slot's local start time decides the
multiplier; later rules are never consulted, even if they also match.
"""
from datetime import datetime, time
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Protocol, Union

MONEY_QUANTUM = Decimal("0.01")


class PriceRule(Protocol):
    start_time: str
    end_time: str
    multiplier: float


def quantize_money(amount: Decimal) -> Decimal:
    return amount.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def parse_hhmm(value: str) -> time:
    """Parse an ``HH:mm`` string into a time of day."""
    hour, minute = value.split(":")
    return time(hour=int(hour), minute=int(minute))


def rule_matches(start: str, end: str, at: time) -> bool:
    """
    Whether ``at`` falls in the half-open window [start, end).

    A window whose end is not after its start wraps past midnight, so
    23:00-01:00 covers 23:00-23:59 and 00:00-00:59.
    """
    window_start = parse_hhmm(start)
    window_end = parse_hhmm(end)
    at = at.replace(second=0, microsecond=0)

    if window_start < window_end:
        return window_start <= at < window_end
    return at >= window_start or at < window_end


def slot_price(
    base_price: Union[Decimal, int, str],
    rules: Iterable[PriceRule],
    slot_start: Union[datetime, time],
) -> Decimal:
    """
    Price of one hour starting at ``slot_start`` (local wall-clock time).

    Args:
        base_price: Court base price per hour
        rules: Pricing rules in declaration order
        slot_start: Local start of the slot

    Returns:
        ``base_price * multiplier`` of the first matching rule, else ``base_price``
    """
    base = Decimal(str(base_price))
    at = slot_start.time() if isinstance(slot_start, datetime) else slot_start

    for rule in rules:
        if rule_matches(rule.start_time, rule.end_time, at):
            return quantize_money(base * Decimal(str(rule.multiplier)))

    return quantize_money(base)


def booking_total(price_per_hour: Decimal, hours: float) -> Decimal:
    """Total for a booking of ``hours`` at a fixed hourly price."""
    return quantize_money(price_per_hour * Decimal(str(hours)))
