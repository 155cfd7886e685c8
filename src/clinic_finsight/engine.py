# Clinic FinSight - Financial classification & reporting engine for clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Core DRE (profit-and-loss waterfall) engine for Clinic FinSight.

This module turns a list of transactions into the standardized DRE
("Demonstração do Resultado do Exercício") for one reporting window.

Pipeline
--------
1. Normalization
   The input (DataFrame, Transaction objects or raw mappings) is
   normalized by ``transactions_to_frame``.

2. Classification
   Each transaction receives exactly one Bucket from a Taxonomy
   (``Taxonomy.classify_frame``).

3. Period filtering
   Transactions are restricted to the Period (accrual window or
   cumulative cash view).

4. Waterfall
   The nine rows are computed in strict sequence:

       gross_revenue      = Σ revenue amounts > 0
       deductions         = Σ |amount| of DEDUCTION transactions
       net_revenue        = gross_revenue - deductions
       cmv                = Σ CMV amounts
       gross_profit       = net_revenue - cmv
       operating_expenses = Σ OPERATING_EXPENSE amounts
       operating_profit   = gross_profit - operating_expenses
       taxes              = Σ TAX_ON_PROFIT amounts
       net_profit         = operating_profit - taxes

   Margins are expressed as a percentage of gross revenue and are 0.0
   when gross revenue is 0.

The result is fully recomputed on every call. There is no cache and no
module-level state, so identical inputs always produce identical output.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass
from typing import Any, Optional, Union

import pandas as pd

from .periods import Period, filter_transactions_by_period
from .taxonomy import DEFAULT_TAXONOMY, Bucket, Taxonomy
from .transactions import Transaction, transactions_to_frame

logger = logging.getLogger(__name__)

TransactionsInput = Union[
    pd.DataFrame, Iterable[Union[Transaction, Mapping[str, Any]]]
]


def safe_pct(numerator: float, denominator: float) -> float:
    """Return numerator / denominator × 100, or 0.0 when the denominator is 0."""
    if denominator == 0:
        return 0.0
    return numerator / denominator * 100


@dataclass(frozen=True)
class DREResult:
    """
    The nine waterfall rows and the three margins of a DRE.

    Attributes
    ----------
    gross_revenue, deductions, net_revenue, cmv, gross_profit,
    operating_expenses, operating_profit, taxes, net_profit :
        Waterfall rows, as positive magnitudes for the summed rows and
        signed values for the derived rows.
    gross_profit_margin, operating_margin, net_margin :
        Percentages of gross revenue (0.0 when gross revenue is 0).
    basis :
        'accrual' for period windows, 'cash' for the cumulative view.
    period_label :
        Label of the window the result was computed for.
    """

    gross_revenue: float
    deductions: float
    net_revenue: float
    cmv: float
    gross_profit: float
    operating_expenses: float
    operating_profit: float
    taxes: float
    net_profit: float
    gross_profit_margin: float
    operating_margin: float
    net_margin: float
    basis: str = "accrual"
    period_label: str = ""

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def reconciles(self, tolerance: float = 1e-6) -> bool:
        """True when gross revenue equals the sum of every deduction,
        cost, expense and the net profit."""
        total = (
            self.deductions
            + self.cmv
            + self.operating_expenses
            + self.taxes
            + self.net_profit
        )
        return abs(self.gross_revenue - total) <= tolerance


def prepare_transactions(
    transactions: TransactionsInput, taxonomy: Optional[Taxonomy] = None
) -> pd.DataFrame:
    """Normalize and classify transactions (adds a 'bucket' column)."""
    frame = transactions_to_frame(transactions)
    return (taxonomy or DEFAULT_TAXONOMY).classify_frame(frame)


def waterfall_from_classified(
    classified: pd.DataFrame, basis: str = "accrual", period_label: str = ""
) -> DREResult:
    """
    Compute the DRE rows from an already classified, period-filtered
    DataFrame (columns: type, amount, bucket).
    """
    if classified.empty:
        amounts = pd.Series(dtype=float)
        buckets = pd.Series(dtype="object")
        types = pd.Series(dtype="object")
    else:
        amounts = classified["amount"].astype(float)
        buckets = classified["bucket"]
        types = classified["type"]

    def _sum(mask: pd.Series) -> float:
        return float(amounts[mask].sum()) if len(amounts) else 0.0

    gross_revenue = _sum((types == "revenue") & (amounts > 0))
    deductions = (
        float(amounts[buckets == Bucket.DEDUCTION.value].abs().sum()) if len(amounts) else 0.0
    )
    net_revenue = gross_revenue - deductions
    cmv = _sum(buckets == Bucket.CMV.value)
    gross_profit = net_revenue - cmv
    operating_expenses = _sum(buckets == Bucket.OPERATING_EXPENSE.value)
    operating_profit = gross_profit - operating_expenses
    taxes = _sum(buckets == Bucket.TAX_ON_PROFIT.value)
    net_profit = operating_profit - taxes

    result = DREResult(
        gross_revenue=gross_revenue,
        deductions=deductions,
        net_revenue=net_revenue,
        cmv=cmv,
        gross_profit=gross_profit,
        operating_expenses=operating_expenses,
        operating_profit=operating_profit,
        taxes=taxes,
        net_profit=net_profit,
        gross_profit_margin=safe_pct(gross_profit, gross_revenue),
        operating_margin=safe_pct(operating_profit, gross_revenue),
        net_margin=safe_pct(net_profit, gross_revenue),
        basis=basis,
        period_label=period_label,
    )
    logger.debug(
        "DRE %s (%s): revenue=%.2f net_profit=%.2f over %d transactions",
        period_label,
        basis,
        gross_revenue,
        net_profit,
        len(classified),
    )
    return result


def compute_dre(
    transactions: TransactionsInput,
    period: Period,
    taxonomy: Optional[Taxonomy] = None,
) -> DREResult:
    """
    Compute the DRE of a set of transactions for one reporting window.

    Args:
        transactions: DataFrame, Transaction objects or raw mappings.
        period: Window to report on. Its mode decides between the
            accrual view and the cumulative cash view.
        taxonomy: Classification rules (default Portuguese taxonomy).

    Returns:
        A DREResult. Totals never raise on dirty text: unknown expenses
        fall through to operating expenses.

    Raises:
        InvalidTransactionError: if a record is structurally malformed.
    """
    classified = prepare_transactions(transactions, taxonomy)
    in_period = filter_transactions_by_period(classified, period)
    return waterfall_from_classified(
        in_period, basis=period.basis, period_label=period.label
    )
