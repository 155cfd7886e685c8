# Clinic FinSight - Financial classification & reporting engine for clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for Clinic FinSight.

This module defines a Period value object and helpers to derive
reporting windows (month, quarter, year, custom range, cumulative cash
view) from a reference date.

Two kinds of windows exist:

- accrual windows (monthly, quarterly, yearly, custom) keep transactions
  with ``start <= date <= end``;
- the cumulative cash window has no lower bound and keeps every
  transaction with ``date <= end``. Its totals are running balances and
  must never be added to an accrual total.
"""

import logging
from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional, Union

import pandas as pd

logger = logging.getLogger(__name__)

PERIOD_MODES: tuple[str, ...] = ("monthly", "quarterly", "yearly", "custom", "cumulative")

# Millisecond precision, matching epoch-millisecond transaction dates.
END_OF_DAY = time(23, 59, 59, 999000)


@dataclass(frozen=True)
class Period:
    """Represents a reporting window with a human-readable label.

    ``start`` is None for the cumulative mode.
    """

    start: Optional[datetime]
    end: datetime
    label: str
    mode: str

    @property
    def is_cumulative(self) -> bool:
        return self.start is None

    @property
    def basis(self) -> str:
        """'cash' for the cumulative view, 'accrual' otherwise."""
        return "cash" if self.is_cumulative else "accrual"

    def contains(self, when: datetime) -> bool:
        if self.start is not None and when < self.start:
            return False
        return when <= self.end


def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


def start_of_day(d: date) -> datetime:
    return datetime.combine(d, time.min)


def end_of_day(d: date) -> datetime:
    return datetime.combine(d, END_OF_DAY)


def _month_window(year: int, month: int) -> tuple[datetime, datetime]:
    last_day = monthrange(year, month)[1]
    return start_of_day(date(year, month, 1)), end_of_day(date(year, month, last_day))


def period_monthly(reference: Union[date, datetime]) -> Period:
    """Calendar month containing the reference date."""
    ref = _as_date(reference)
    start, end = _month_window(ref.year, ref.month)
    return Period(start=start, end=end, label=f"{ref.year}-{ref.month:02d}", mode="monthly")


def period_quarterly(reference: Union[date, datetime]) -> Period:
    """Calendar quarter containing the reference date."""
    ref = _as_date(reference)
    quarter = (ref.month - 1) // 3
    first_month = quarter * 3 + 1
    start, _ = _month_window(ref.year, first_month)
    _, end = _month_window(ref.year, first_month + 2)
    return Period(start=start, end=end, label=f"{ref.year}-Q{quarter + 1}", mode="quarterly")


def period_yearly(reference: Union[date, datetime]) -> Period:
    """Calendar year containing the reference date."""
    ref = _as_date(reference)
    return Period(
        start=start_of_day(date(ref.year, 1, 1)),
        end=end_of_day(date(ref.year, 12, 31)),
        label=f"{ref.year}",
        mode="yearly",
    )


def period_custom(
    start: Union[date, datetime], end: Union[date, datetime]
) -> Period:
    """Custom inclusive range of whole days: the start is pinned to
    midnight and the end pushed to the end of its day."""
    s = start_of_day(_as_date(start))
    e = end_of_day(_as_date(end))
    if e < s:
        raise ValueError("Custom period end date cannot be before start date.")
    return Period(
        start=s,
        end=e,
        label=f"Custom period ({s.date()} → {e.date()})",
        mode="custom",
    )


def period_cumulative(reference: Union[date, datetime]) -> Period:
    """Cash view: everything up to the end of the reference day."""
    ref = _as_date(reference)
    return Period(start=None, end=end_of_day(ref), label=f"Cash up to {ref}", mode="cumulative")


def period_for(
    reference: Union[date, datetime],
    mode: str,
    start: Optional[Union[date, datetime]] = None,
    end: Optional[Union[date, datetime]] = None,
) -> Period:
    """
    Build the reporting window for a reference date and a mode.

    Args:
        reference: Reference date (ignored by the custom mode).
        mode: One of 'monthly', 'quarterly', 'yearly', 'custom',
            'cumulative'.
        start, end: Bounds of the custom mode (both required).

    Raises:
        ValueError: for an unknown mode or incomplete custom bounds.
    """
    if mode == "monthly":
        return period_monthly(reference)
    if mode == "quarterly":
        return period_quarterly(reference)
    if mode == "yearly":
        return period_yearly(reference)
    if mode == "cumulative":
        return period_cumulative(reference)
    if mode == "custom":
        if start is None or end is None:
            raise ValueError("Custom period requires both start and end dates.")
        return period_custom(start, end)
    raise ValueError(f"Unknown period mode: {mode!r}")


def previous_period(period: Period) -> Period:
    """
    Return the comparable window immediately before ``period``.

    Month, quarter and year shift by one calendar unit. A custom window
    is shifted back by its own length so both windows have the same
    duration.
    """
    if period.start is None:
        raise ValueError("A cumulative cash view has no previous period.")

    before = period.start.date() - timedelta(days=1)

    if period.mode == "monthly":
        return period_monthly(before)
    if period.mode == "quarterly":
        return period_quarterly(before)
    if period.mode == "yearly":
        return period_yearly(before)

    days = (period.end.date() - period.start.date()).days + 1
    prev_start = period.start.date() - timedelta(days=days)
    return period_custom(prev_start, before)


def filter_transactions_by_period(
    transactions: pd.DataFrame, period: Period
) -> pd.DataFrame:
    """
    Keep only transactions inside the period.

    The ``transactions`` DataFrame is expected to contain a 'date' column
    of type datetime64[ns] (as produced by ``transactions_to_frame``).

    Returns:
        A filtered copy; accrual windows keep [start, end], the
        cumulative window keeps everything up to ``end``.
    """
    mask = transactions["date"] <= pd.Timestamp(period.end)
    if period.start is not None:
        mask &= transactions["date"] >= pd.Timestamp(period.start)
    filtered = transactions.loc[mask].copy()
    logger.debug(
        "Period %s (%s): kept %d of %d transactions",
        period.label,
        period.basis,
        len(filtered),
        len(transactions),
    )
    return filtered
