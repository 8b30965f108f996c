"""Formatting utilities for currency and date display."""

from __future__ import annotations

from datetime import date, datetime
from typing import Union

from .config import CURRENCY_SYMBOL


def group_indian(whole: int) -> str:
    """Group digits the en-IN way: last three, then pairs.

    Example:
        >>> group_indian(1234567)
        '12,34,567'
    """
    digits = str(abs(whole))
    if len(digits) <= 3:
        grouped = digits
    else:
        head, tail = digits[:-3], digits[-3:]
        pairs = []
        while len(head) > 2:
            pairs.insert(0, head[-2:])
            head = head[:-2]
        if head:
            pairs.insert(0, head)
        grouped = ','.join(pairs + [tail])
    return f"-{grouped}" if whole < 0 else grouped


def format_amount(amount: Union[float, int]) -> str:
    """Format an amount with en-IN grouping and at most two decimals.

    Trailing zero decimals are dropped, as the browser's ``en-IN`` locale
    formatting does.

    Example:
        >>> format_amount(123456.5)
        '1,23,456.5'
        >>> format_amount(2500)
        '2,500'
    """
    rounded = round(float(amount), 2)
    negative = rounded < 0
    whole = int(abs(rounded))
    cents = int(round((abs(rounded) - whole) * 100))
    if cents == 100:
        whole, cents = whole + 1, 0
    text = group_indian(whole)
    if cents:
        text += f".{cents:02d}".rstrip('0')
    return f"-{text}" if negative else text


def format_inr(amount: Union[float, int], include_sign: bool = True) -> str:
    """Format an amount for display, e.g. ``₹1,23,456``.

    Example:
        >>> format_inr(-2000)
        '-₹2,000'
    """
    formatted = format_amount(abs(amount))
    prefix = CURRENCY_SYMBOL if include_sign else ''
    return f"-{prefix}{formatted}" if amount < 0 and round(amount, 2) != 0 else f"{prefix}{formatted}"


def format_date_label(value: Union[date, datetime]) -> str:
    """Short label used in the history list, e.g. ``Jan 5, 2024``."""
    return f"{value:%b} {value.day}, {value.year}"


def format_month_label(month: int, year: int) -> str:
    """Heading for the monthly summary, e.g. ``January 2024``."""
    return f"{date(year, month, 1):%B} {year}"
