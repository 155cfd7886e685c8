from datetime import date, datetime

import pytest

from clinic_finsight.indicators import (
    compute_overview,
    goal_attainment_pct,
    month_end_projection,
    revenue_growth_pct,
)
from clinic_finsight.periods import period_for


@pytest.mark.parametrize(
    "current, previous, expected",
    [(1500.0, 1000.0, 50.0), (500.0, 1000.0, -50.0), (1000.0, 0.0, 0.0)],
)
def test_revenue_growth_pct(current, previous, expected) -> None:
    assert revenue_growth_pct(current, previous) == pytest.approx(expected)


def test_goal_attainment_pct() -> None:
    assert goal_attainment_pct(1500.0, 3000.0) == pytest.approx(50.0)
    assert goal_attainment_pct(1500.0, 0.0) == 0.0


def test_month_end_projection_current_month() -> None:
    """Ten days into March, the daily average is spread over 31 days."""
    projected = month_end_projection(3000.0, date(2025, 3, 1), date(2025, 3, 10))
    assert projected == pytest.approx(9300.0)


def test_month_end_projection_past_month_is_unchanged() -> None:
    projected = month_end_projection(3000.0, date(2025, 2, 1), datetime(2025, 3, 10, 8))
    assert projected == pytest.approx(3000.0)


def test_compute_overview() -> None:
    txs = [
        {"id": "1", "type": "revenue", "amount": 1000.0, "category": "Consulta",
         "date": datetime(2025, 1, 20)},
        {"id": "2", "type": "revenue", "amount": 1500.0, "category": "Consulta",
         "date": datetime(2025, 2, 5)},
        {"id": "3", "type": "expense", "amount": 300.0, "category": "Aluguel",
         "date": datetime(2025, 2, 6)},
    ]

    ov = compute_overview(txs, period_for(date(2025, 2, 1), "monthly"), revenue_goal=3000.0)

    assert ov.total_revenue == pytest.approx(1500.0)
    assert ov.total_expenses == pytest.approx(300.0)
    assert ov.profit == pytest.approx(1200.0)
    assert ov.margin_pct == pytest.approx(80.0)
    assert ov.efficiency_pct == pytest.approx(80.0)
    assert ov.revenue_growth_pct == pytest.approx(50.0)
    assert ov.revenue_count == 1
    assert ov.goal_attainment_pct == pytest.approx(50.0)


def test_compute_overview_cumulative_has_no_growth() -> None:
    txs = [
        {"id": "1", "type": "revenue", "amount": 1000.0, "category": "Consulta",
         "date": datetime(2025, 1, 20)},
    ]
    ov = compute_overview(txs, period_for(date(2025, 2, 1), "cumulative"))
    assert ov.revenue_growth_pct == 0.0
    assert ov.total_revenue == pytest.approx(1000.0)


def test_compute_overview_empty() -> None:
    ov = compute_overview([], period_for(date(2025, 2, 1), "monthly"))
    assert ov.total_revenue == 0.0
    assert ov.efficiency_pct == 0.0
    assert ov.margin_pct == 0.0
    assert ov.revenue_count == 0
