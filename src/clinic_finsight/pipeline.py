# Clinic FinSight - Financial classification & reporting engine for clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
CRM pipeline projections.

Two projections coexist and are deliberately kept as separate functions:

- ``potential_revenue``: top-line view,
      realized_revenue + open_value × conversion%
- ``projected_net_profit``: bottom-line view,
      realized_net_profit + open_value × conversion% × net_margin%

The open pipeline value is the sum of quotes whose status is still open
(draft or sent by default). Approved and rejected quotes are closed.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Union

from .transactions import PipelineQuote, quotes_from_records

DEFAULT_OPEN_STATUSES: tuple[str, ...] = ("draft", "sent")

QuotesInput = Iterable[Union[PipelineQuote, Mapping[str, Any]]]


@dataclass(frozen=True)
class PipelineProjection:
    open_pipeline_value: float
    potential_revenue: float
    projected_net_profit: float


def open_pipeline_value(
    quotes: QuotesInput,
    open_statuses: Sequence[str] = DEFAULT_OPEN_STATUSES,
) -> float:
    """Sum of ``total_amount`` over quotes still open."""
    statuses = {s.lower() for s in open_statuses}
    return float(
        sum(q.total_amount for q in quotes_from_records(quotes) if q.status in statuses)
    )


def potential_revenue(
    realized_revenue: float,
    open_value: float,
    conversion_pct: float,
) -> float:
    """Realized revenue plus the expected conversion of the open pipeline."""
    return realized_revenue + open_value * (conversion_pct / 100)


def projected_net_profit(
    realized_net_profit: float,
    open_value: float,
    conversion_pct: float,
    net_margin_pct: float,
) -> float:
    """Realized net profit plus the margin earned on converted quotes."""
    return realized_net_profit + open_value * (conversion_pct / 100) * (
        net_margin_pct / 100
    )


def project_pipeline(
    realized_revenue: float,
    realized_net_profit: float,
    net_margin_pct: float,
    open_quotes: QuotesInput,
    conversion_pct: float,
    open_statuses: Sequence[str] = DEFAULT_OPEN_STATUSES,
) -> PipelineProjection:
    """Compute both pipeline projections from the same quotes."""
    value = open_pipeline_value(open_quotes, open_statuses)
    return PipelineProjection(
        open_pipeline_value=value,
        potential_revenue=potential_revenue(realized_revenue, value, conversion_pct),
        projected_net_profit=projected_net_profit(
            realized_net_profit, value, conversion_pct, net_margin_pct
        ),
    )
