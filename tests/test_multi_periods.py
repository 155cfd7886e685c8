from datetime import date, datetime

import pytest

from clinic_finsight.multi_periods import compute_dre_multi_period
from clinic_finsight.periods import period_for

TXS = [
    {"id": "1", "type": "revenue", "amount": 1000.0, "category": "Consulta",
     "date": datetime(2025, 1, 10)},
    {"id": "2", "type": "expense", "amount": 200.0, "category": "Aluguel",
     "date": datetime(2025, 1, 11)},
    {"id": "3", "type": "revenue", "amount": 2000.0, "category": "Consulta",
     "date": datetime(2025, 2, 10)},
]


def test_one_block_per_period() -> None:
    periods = [
        period_for(date(2025, 1, 1), "monthly"),
        period_for(date(2025, 2, 1), "monthly"),
    ]

    df = compute_dre_multi_period(TXS, periods)

    assert len(df) == 18
    assert list(df.columns[:2]) == ["period_label", "basis"]
    assert list(df["period_label"].unique()) == ["2025-01", "2025-02"]
    assert set(df["basis"]) == {"accrual"}

    net = df.loc[df["id"] == 9].set_index("period_label")["amount"]
    assert net["2025-01"] == pytest.approx(800.0)
    assert net["2025-02"] == pytest.approx(2000.0)


def test_rejects_empty_periods() -> None:
    with pytest.raises(ValueError):
        compute_dre_multi_period(TXS, [])


def test_rejects_mixed_bases() -> None:
    periods = [
        period_for(date(2025, 1, 1), "monthly"),
        period_for(date(2025, 2, 1), "cumulative"),
    ]
    with pytest.raises(ValueError):
        compute_dre_multi_period(TXS, periods)
