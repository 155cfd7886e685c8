# Clinic FinSight - Financial classification & reporting engine for clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Break-even and contribution-margin analytics.

    contribution_margin     = gross_revenue - taxes - cmv
    contribution_margin_pct = contribution_margin / gross_revenue × 100
    break_even_revenue      = operating_expenses / (contribution_margin_pct / 100)

The break-even point only exists when the contribution margin is
positive. Otherwise the result carries ``break_even_revenue = 0.0`` and
``status = "unreachable"``; it is never negative nor infinite.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .engine import TransactionsInput, compute_dre, safe_pct
from .periods import Period
from .taxonomy import Taxonomy

logger = logging.getLogger(__name__)

STATUS_ABOVE = "above"
STATUS_BELOW = "below"
STATUS_UNREACHABLE = "unreachable"


@dataclass(frozen=True)
class BreakEvenResult:
    """Break-even position of a reporting window."""

    gross_revenue: float
    operating_expenses: float
    contribution_margin: float
    contribution_margin_pct: float
    break_even_revenue: float
    status: str

    @property
    def is_reachable(self) -> bool:
        return self.status != STATUS_UNREACHABLE

    def daily_target(self, days: int) -> float:
        """Break-even revenue spread evenly over ``days`` (min. 1 day)."""
        return self.break_even_revenue / max(days, 1)


def break_even_from_totals(
    gross_revenue: float,
    taxes: float,
    cmv: float,
    operating_expenses: float,
) -> BreakEvenResult:
    """Compute the break-even position from DRE totals."""
    contribution_margin = gross_revenue - taxes - cmv
    cm_pct = safe_pct(contribution_margin, gross_revenue)

    if cm_pct > 0:
        break_even = operating_expenses / (cm_pct / 100)
        status = STATUS_ABOVE if gross_revenue >= break_even else STATUS_BELOW
    else:
        break_even = 0.0
        status = STATUS_UNREACHABLE
        logger.debug(
            "Break-even unreachable: contribution margin %.2f%% on revenue %.2f",
            cm_pct,
            gross_revenue,
        )

    return BreakEvenResult(
        gross_revenue=gross_revenue,
        operating_expenses=operating_expenses,
        contribution_margin=contribution_margin,
        contribution_margin_pct=cm_pct,
        break_even_revenue=break_even,
        status=status,
    )


def compute_break_even(
    transactions: TransactionsInput,
    period: Period,
    taxonomy: Optional[Taxonomy] = None,
) -> BreakEvenResult:
    """Compute the break-even position of the transactions in ``period``."""
    dre = compute_dre(transactions, period, taxonomy)
    return break_even_from_totals(
        gross_revenue=dre.gross_revenue,
        taxes=dre.taxes,
        cmv=dre.cmv,
        operating_expenses=dre.operating_expenses,
    )
