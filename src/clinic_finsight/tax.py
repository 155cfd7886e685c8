# Clinic FinSight - Financial classification & reporting engine for clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Tax provision estimate for the Brazilian small-business regimes.

- MEI       : flat monthly contribution (75.00), whatever the revenue,
- SIMPLES   : revenue × rate (default 6 %),
- PRESUMIDO : revenue × rate (default 11.33 %).

The regime is explicit configuration passed to each call.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

MEI_MONTHLY_CONTRIBUTION = 75.00


class TaxRegime(str, Enum):
    MEI = "MEI"
    SIMPLES = "SIMPLES"
    PRESUMIDO = "PRESUMIDO"


DEFAULT_RATES: dict[TaxRegime, float] = {
    TaxRegime.MEI: 0.0,
    TaxRegime.SIMPLES: 6.0,
    TaxRegime.PRESUMIDO: 11.33,
}


@dataclass(frozen=True)
class TaxConfig:
    """Tax regime and rate (percentage of revenue)."""

    regime: TaxRegime = TaxRegime.SIMPLES
    rate: float = 6.0

    @classmethod
    def for_regime(cls, regime: str, rate: Optional[float] = None) -> "TaxConfig":
        """Build a config, using the regime's default rate when none is given."""
        try:
            r = TaxRegime(str(regime).upper())
        except ValueError as exc:
            raise ValueError(
                f"Unknown tax regime {regime!r}, expected one of: "
                f"{', '.join(t.value for t in TaxRegime)}."
            ) from exc
        return cls(regime=r, rate=DEFAULT_RATES[r] if rate is None else float(rate))


def estimate_tax_provision(revenue: float, config: TaxConfig) -> float:
    """Amount to provision for taxes on ``revenue`` under ``config``."""
    if config.regime is TaxRegime.MEI:
        return MEI_MONTHLY_CONTRIBUTION
    return revenue * (config.rate / 100)
