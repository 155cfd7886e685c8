# Clinic FinSight - Financial classification & reporting engine for clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for Clinic FinSight.

This module contains helpers that turn computed results into tabular
views ready for display or export by the presentation layer:

- ``dre_to_dataframe``: the DRE as ordered statement rows, with the
  vertical analysis (share of gross revenue) of each row,
- ``bucket_breakdown``: drill-down of one DRE row (its transactions,
  average and largest entry, and category mix),
- ``top_expenses``: the largest expenses of a window,
- ``cost_structure``: where revenue went (fixed, variable, taxes, profit).

The computation itself is performed by ``engine``; views never change
the numbers, they only shape and round them.
"""

from dataclasses import dataclass
from typing import Optional

import pandas as pd

from .engine import DREResult, TransactionsInput, prepare_transactions, safe_pct
from .periods import Period, filter_transactions_by_period
from .taxonomy import Bucket, Taxonomy

# (id, name, level, type, DREResult attribute, sign)
# 'acc' rows are summed buckets shown as negative outflows, 'calc' rows
# are derived from the rows above them.
_DRE_ROWS: tuple[tuple[int, str, int, str, str, int], ...] = (
    (1, "Receita bruta", 1, "acc", "gross_revenue", 1),
    (2, "Deduções", 2, "acc", "deductions", -1),
    (3, "Receita líquida", 1, "calc", "net_revenue", 1),
    (4, "CMV", 2, "acc", "cmv", -1),
    (5, "Lucro bruto", 1, "calc", "gross_profit", 1),
    (6, "Despesas operacionais", 2, "acc", "operating_expenses", -1),
    (7, "Resultado operacional", 1, "calc", "operating_profit", 1),
    (8, "Impostos sobre o lucro", 2, "acc", "taxes", -1),
    (9, "Lucro líquido", 0, "calc", "net_profit", 1),
)

_BREAKDOWN_COLUMNS = ["category", "amount", "share_pct"]


def dre_to_dataframe(result: DREResult, decimals: int = 2) -> pd.DataFrame:
    """
    Convert a DREResult into statement rows.

    The resulting DataFrame has the following columns:
        - display_order:  10, 20, 30, ...
        - id:             row identifier (1..9)
        - level:          0 for the bottom line, 1 for subtotals,
                          2 for the summed buckets
        - name:           row label
        - type:           'acc' (summed bucket) or 'calc' (derived row)
        - amount:         signed value, outflows negative
        - pct_of_revenue: vertical analysis against gross revenue
    """
    rows: list[dict[str, object]] = []
    for idx, (row_id, name, level, row_type, attr, sign) in enumerate(_DRE_ROWS, start=1):
        value = sign * getattr(result, attr)
        rows.append(
            {
                "display_order": idx * 10,
                "id": row_id,
                "level": level,
                "name": name,
                "type": row_type,
                "amount": round(value, decimals),
                "pct_of_revenue": round(
                    safe_pct(value, result.gross_revenue), decimals
                ),
            }
        )
    return pd.DataFrame(rows)


@dataclass(frozen=True)
class BucketBreakdown:
    """Drill-down of one DRE row."""

    bucket: Bucket
    total: float
    count: int
    average: float
    largest: float
    transactions: pd.DataFrame
    categories: pd.DataFrame


def _bucket_mask(classified: pd.DataFrame, bucket: Bucket) -> pd.Series:
    # Gross revenue lists every positive revenue, including the ones also
    # flagged as deductions.
    if bucket is Bucket.GROSS_REVENUE:
        return (classified["type"] == "revenue") & (classified["amount"] > 0)
    return classified["bucket"] == bucket.value


def bucket_breakdown(
    transactions: TransactionsInput,
    period: Period,
    bucket: Bucket,
    taxonomy: Optional[Taxonomy] = None,
) -> BucketBreakdown:
    """
    Build the drill-down of one bucket for a window.

    Transactions are sorted from the most recent; categories by amount,
    descending. Amounts of deductions are taken in absolute value, as in
    the DRE.
    """
    classified = filter_transactions_by_period(
        prepare_transactions(transactions, taxonomy), period
    )
    if classified.empty:
        selected = classified
    else:
        selected = classified.loc[_bucket_mask(classified, bucket)].copy()

    if selected.empty:
        return BucketBreakdown(
            bucket=bucket,
            total=0.0,
            count=0,
            average=0.0,
            largest=0.0,
            transactions=selected,
            categories=pd.DataFrame(columns=_BREAKDOWN_COLUMNS),
        )

    if bucket is Bucket.DEDUCTION:
        selected["amount"] = selected["amount"].abs()

    total = float(selected["amount"].sum())
    count = len(selected)

    by_category = (
        selected.groupby("category", as_index=False)["amount"]
        .sum()
        .sort_values("amount", ascending=False, kind="stable")
        .reset_index(drop=True)
    )
    by_category["share_pct"] = [safe_pct(float(a), total) for a in by_category["amount"]]

    return BucketBreakdown(
        bucket=bucket,
        total=total,
        count=count,
        average=total / count,
        largest=float(selected["amount"].max()),
        transactions=selected.sort_values("date", ascending=False, kind="stable").reset_index(
            drop=True
        ),
        categories=by_category[_BREAKDOWN_COLUMNS],
    )


def top_expenses(
    transactions: TransactionsInput,
    period: Period,
    n: int = 5,
    taxonomy: Optional[Taxonomy] = None,
) -> pd.DataFrame:
    """Return the ``n`` largest expenses of the window."""
    classified = filter_transactions_by_period(
        prepare_transactions(transactions, taxonomy), period
    )
    expenses = classified.loc[classified["type"] == "expense"]
    return (
        expenses.sort_values("amount", ascending=False, kind="stable")
        .head(n)
        .reset_index(drop=True)
    )


def cost_structure(result: DREResult) -> pd.DataFrame:
    """
    Split of revenue between fixed costs, variable costs, taxes and
    profit, for charts. A loss is shown as a profit of 0.
    """
    return pd.DataFrame(
        [
            {"name": "fixed", "value": result.operating_expenses},
            {"name": "variable", "value": result.cmv},
            {"name": "taxes", "value": result.taxes},
            {"name": "profit", "value": max(0.0, result.net_profit)},
        ]
    )
