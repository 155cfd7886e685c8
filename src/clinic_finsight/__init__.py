# Clinic FinSight - Financial classification & reporting engine for clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Clinic FinSight
---------------

The financial classification and reporting engine of a clinic-management
application. It turns the raw transactions supplied by the data-access
layer into management reports, as pure in-memory computations.

Main capabilities:
- data-driven classification of transactions into DRE buckets,
- reporting windows (month, quarter, year, custom, cumulative cash view),
- the DRE profit-and-loss waterfall with margins and vertical analysis,
- break-even and contribution-margin analytics,
- cost-plus pricing of procedures,
- "what-if" scenario simulation,
- CRM pipeline revenue and profit projections,
- tax provision estimates and dashboard indicators,
- multi-period DRE series.

Persistence, authentication, import/export and rendering belong to other
layers: they supply the data and consume the results.

Version: 0.1.0
"""

__all__ = [
    "breakeven",
    "config",
    "engine",
    "indicators",
    "multi_periods",
    "periods",
    "pipeline",
    "pricing",
    "simulation",
    "tax",
    "taxonomy",
    "transactions",
    "views",
]

__version__ = "0.1.0"
