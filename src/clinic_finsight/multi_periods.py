# Clinic FinSight - Financial classification & reporting engine for clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Multi-period orchestration of the DRE.

``compute_dre_multi_period()`` normalizes and classifies the transactions
once, then computes one DRE per requested window and returns every row
of every statement in a single long-format DataFrame with a
``period_label`` column, ready for time-series charts and exports.

Accrual windows and the cumulative cash view answer different questions
(what was earned in a period vs. what has accumulated up to a date).
Mixing both in one call is rejected so their totals cannot end up side
by side in the same series.
"""

import logging
from collections.abc import Sequence
from typing import Optional

import pandas as pd

from .engine import TransactionsInput, prepare_transactions, waterfall_from_classified
from .periods import Period, filter_transactions_by_period
from .taxonomy import Taxonomy
from .views import dre_to_dataframe

logger = logging.getLogger(__name__)


def compute_dre_multi_period(
    transactions: TransactionsInput,
    periods: Sequence[Period],
    taxonomy: Optional[Taxonomy] = None,
    decimals: int = 2,
) -> pd.DataFrame:
    """
    Compute the DRE statement for several windows in one pass.

    Returns
    -------
    pandas.DataFrame
        Columns: period_label, basis, display_order, id, level, name,
        type, amount, pct_of_revenue. One block of nine rows per period,
        in the order the periods were given.

    Raises
    ------
    ValueError
        If ``periods`` is empty, or mixes cumulative and accrual windows.
    """
    if not periods:
        raise ValueError("At least one period is required.")

    bases = {p.basis for p in periods}
    if len(bases) > 1:
        raise ValueError(
            "Cannot mix the cumulative cash view with period-bounded windows "
            "in the same computation."
        )

    classified = prepare_transactions(transactions, taxonomy)

    frames: list[pd.DataFrame] = []
    for period in periods:
        result = waterfall_from_classified(
            filter_transactions_by_period(classified, period),
            basis=period.basis,
            period_label=period.label,
        )
        df = dre_to_dataframe(result, decimals=decimals)
        df.insert(0, "basis", period.basis)
        df.insert(0, "period_label", period.label)
        frames.append(df)

    logger.debug("Computed DRE for %d periods", len(frames))
    return pd.concat(frames, ignore_index=True)
