# Clinic FinSight - Financial classification & reporting engine for clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
"What-if" scenario simulation.

A scenario starts from a baseline (revenue, variable and fixed expenses),
applies three sensitivity knobs expressed as percentage shifts and adds
hypothetical line items:

    boosted_revenue  = revenue × (1 + conversion%) × (1 + avg_ticket%)
    boosted_variable = variable × (1 - material_savings%) × (1 + conversion%)
    total_revenue    = boosted_revenue + Σ hypothetical revenue
    total_expenses   = boosted_variable + fixed + Σ hypothetical expenses

With every knob at 0 and no hypothetical item the scenario equals the
baseline exactly. The engine never stores the items: the caller owns
the list and passes it on every call.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from .engine import DREResult, safe_pct


@dataclass(frozen=True)
class Baseline:
    revenue: float
    variable_expenses: float
    fixed_expenses: float

    @property
    def profit(self) -> float:
        # Same operation order as simulate_scenario, so the identity
        # scenario reproduces this value bit for bit.
        return self.revenue - (self.variable_expenses + self.fixed_expenses)

    @classmethod
    def from_dre(cls, result: DREResult) -> "Baseline":
        """Baseline whose profit equals the DRE net profit.

        Deductions, CMV and taxes move with volume; operating expenses
        are the fixed structure.
        """
        return cls(
            revenue=result.gross_revenue,
            variable_expenses=result.deductions + result.cmv + result.taxes,
            fixed_expenses=result.operating_expenses,
        )


@dataclass(frozen=True)
class Sensitivity:
    conversion_pct: float = 0.0
    avg_ticket_pct: float = 0.0
    material_savings_pct: float = 0.0


@dataclass(frozen=True)
class AdHocItem:
    """Hypothetical line item ('revenue' or 'expense')."""

    description: str
    amount: float
    type: str

    def __post_init__(self) -> None:
        if self.type not in ("revenue", "expense"):
            raise ValueError(
                f"Invalid hypothetical item type {self.type!r}, "
                "expected 'revenue' or 'expense'."
            )


@dataclass(frozen=True)
class SimulationResult:
    boosted_revenue: float
    boosted_variable: float
    fixed_expenses: float
    adhoc_revenue: float
    adhoc_expenses: float
    total_revenue: float
    total_expenses: float
    profit: float
    margin: float
    baseline_profit: float
    delta_profit: float


def simulate_scenario(
    baseline: Baseline,
    sensitivity: Sensitivity = Sensitivity(),
    adhoc_items: Sequence[AdHocItem] = (),
) -> SimulationResult:
    """Project the baseline under a sensitivity scenario."""
    conversion = 1 + sensitivity.conversion_pct / 100
    ticket = 1 + sensitivity.avg_ticket_pct / 100
    savings = 1 - sensitivity.material_savings_pct / 100

    boosted_revenue = baseline.revenue * conversion * ticket
    boosted_variable = baseline.variable_expenses * savings * conversion

    adhoc_revenue = sum(i.amount for i in adhoc_items if i.type == "revenue")
    adhoc_expenses = sum(i.amount for i in adhoc_items if i.type == "expense")

    total_revenue = boosted_revenue + adhoc_revenue
    total_expenses = boosted_variable + baseline.fixed_expenses + adhoc_expenses
    profit = total_revenue - total_expenses
    baseline_profit = baseline.profit

    return SimulationResult(
        boosted_revenue=boosted_revenue,
        boosted_variable=boosted_variable,
        fixed_expenses=baseline.fixed_expenses,
        adhoc_revenue=float(adhoc_revenue),
        adhoc_expenses=float(adhoc_expenses),
        total_revenue=total_revenue,
        total_expenses=total_expenses,
        profit=profit,
        margin=safe_pct(profit, total_revenue),
        baseline_profit=baseline_profit,
        delta_profit=profit - baseline_profit,
    )
