# Clinic FinSight - Financial classification & reporting engine for clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Cost-plus (reverse markup) pricing of clinical procedures.

The sale price is the value that, once every percentage-based deduction
(taxes, commission, card fee and desired margin) has been removed,
exactly covers the direct cost of the procedure:

    hour_cost       = fixed_expenses_total / max(hours_per_month, 1)
    minute_cost     = hour_cost / 60
    occupation_cost = minute_cost × procedure_minutes
    direct_cost     = occupation_cost + material_cost
    divisor         = (100 - Σ deduction %) / 100
    final_price     = direct_cost / divisor      (0.0 when divisor <= 0)

``compute_pricing`` is the only implementation of this formula; every
screen that prices a procedure goes through it.
"""

from dataclasses import dataclass
from typing import Optional

from .engine import TransactionsInput, compute_dre
from .periods import Period
from .taxonomy import Taxonomy


@dataclass(frozen=True)
class PricingInputs:
    """Inputs of the pricing calculator (percentages in 0-100)."""

    fixed_expenses_total: float = 0.0
    hours_per_month: float = 160.0
    procedure_minutes: float = 60.0
    material_cost: float = 0.0
    desired_margin_pct: float = 30.0
    tax_pct: float = 6.0
    commission_pct: float = 0.0
    card_fee_pct: float = 2.5

    @property
    def total_deduction_pct(self) -> float:
        return (
            self.tax_pct
            + self.commission_pct
            + self.card_fee_pct
            + self.desired_margin_pct
        )


@dataclass(frozen=True)
class PricingResult:
    """Price and its breakdown. ``feasible`` is False when the
    deductions reach 100 % and no price can cover the cost."""

    hour_cost: float
    minute_cost: float
    occupation_cost: float
    direct_cost: float
    total_deduction_pct: float
    divisor: float
    final_price: float
    profit_amount: float
    tax_amount: float
    commission_amount: float
    card_fee_amount: float
    feasible: bool


def compute_pricing(inputs: PricingInputs) -> PricingResult:
    """Solve the sale price of a procedure."""
    hour_cost = inputs.fixed_expenses_total / max(inputs.hours_per_month, 1)
    minute_cost = hour_cost / 60
    occupation_cost = minute_cost * inputs.procedure_minutes
    direct_cost = occupation_cost + inputs.material_cost

    total_pct = inputs.total_deduction_pct
    divisor = (100 - total_pct) / 100
    feasible = divisor > 0
    final_price = direct_cost / divisor if feasible else 0.0

    return PricingResult(
        hour_cost=hour_cost,
        minute_cost=minute_cost,
        occupation_cost=occupation_cost,
        direct_cost=direct_cost,
        total_deduction_pct=total_pct,
        divisor=divisor,
        final_price=final_price,
        profit_amount=final_price * inputs.desired_margin_pct / 100,
        tax_amount=final_price * inputs.tax_pct / 100,
        commission_amount=final_price * inputs.commission_pct / 100,
        card_fee_amount=final_price * inputs.card_fee_pct / 100,
        feasible=feasible,
    )


def fixed_expenses_total(
    transactions: TransactionsInput,
    period: Period,
    taxonomy: Optional[Taxonomy] = None,
) -> float:
    """Monthly fixed-cost base for pricing: the operating expenses of
    ``period`` under the same taxonomy as the DRE."""
    return compute_dre(transactions, period, taxonomy).operating_expenses
