# Clinic FinSight - Financial classification & reporting engine for clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Dashboard indicators built on top of the DRE.

These are the headline numbers of the finance overview: totals, margin,
growth against the previous comparable window, month-end revenue run
rate and goal attainment. Every ratio is zero-guarded.
"""

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union

from .engine import TransactionsInput, prepare_transactions, safe_pct, waterfall_from_classified
from .periods import Period, filter_transactions_by_period, previous_period
from .taxonomy import Taxonomy


def revenue_growth_pct(current: float, previous: float) -> float:
    """Growth of ``current`` over ``previous``; 0.0 without a previous value."""
    if previous <= 0:
        return 0.0
    return (current - previous) / previous * 100


def goal_attainment_pct(value: float, goal: float) -> float:
    if goal <= 0:
        return 0.0
    return value / goal * 100


def month_end_projection(
    revenue: float,
    reference: Union[date, datetime],
    today: Union[date, datetime],
) -> float:
    """
    Project the revenue of the reference month at month end.

    For the current month the daily average uses the days elapsed so
    far; for any other month it uses the full month length.
    """
    ref = reference.date() if isinstance(reference, datetime) else reference
    now = today.date() if isinstance(today, datetime) else today
    days_in_month = monthrange(ref.year, ref.month)[1]
    is_current = (ref.year, ref.month) == (now.year, now.month)
    days_passed = now.day if is_current else days_in_month
    return revenue / max(days_passed, 1) * days_in_month


@dataclass(frozen=True)
class OverviewIndicators:
    total_revenue: float
    total_expenses: float
    profit: float
    margin_pct: float
    efficiency_pct: float
    revenue_growth_pct: float
    revenue_count: int
    goal_attainment_pct: float


def compute_overview(
    transactions: TransactionsInput,
    period: Period,
    revenue_goal: float = 0.0,
    taxonomy: Optional[Taxonomy] = None,
) -> OverviewIndicators:
    """
    Headline indicators of a window.

    Growth compares gross revenue against ``previous_period(period)``;
    it is 0.0 for the cumulative cash view.
    """
    classified = prepare_transactions(transactions, taxonomy)
    current = filter_transactions_by_period(classified, period)
    dre = waterfall_from_classified(current, period.basis, period.label)

    total_expenses = dre.cmv + dre.operating_expenses + dre.taxes
    growth = 0.0
    if not period.is_cumulative:
        prev = previous_period(period)
        previous = waterfall_from_classified(
            filter_transactions_by_period(classified, prev), prev.basis, prev.label
        )
        growth = revenue_growth_pct(dre.gross_revenue, previous.gross_revenue)

    revenue_count = 0
    if not current.empty:
        revenue_count = int(((current["type"] == "revenue") & (current["amount"] > 0)).sum())

    return OverviewIndicators(
        total_revenue=dre.gross_revenue,
        total_expenses=total_expenses,
        profit=dre.net_profit,
        margin_pct=dre.net_margin,
        efficiency_pct=(
            100 - safe_pct(total_expenses, dre.gross_revenue) if dre.gross_revenue else 0.0
        ),
        revenue_growth_pct=growth,
        revenue_count=revenue_count,
        goal_attainment_pct=goal_attainment_pct(dre.gross_revenue, revenue_goal),
    )
