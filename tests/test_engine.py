import random
from datetime import date, datetime

import pandas as pd
import pytest

from clinic_finsight.engine import compute_dre, safe_pct
from clinic_finsight.periods import period_for
from clinic_finsight.taxonomy import Taxonomy
from clinic_finsight.transactions import InvalidTransactionError, Transaction

JANUARY = period_for(date(2025, 1, 15), "monthly")


def _tx(tx_id, tx_type, amount, category, when=datetime(2025, 1, 10), description=""):
    return {
        "id": tx_id,
        "type": tx_type,
        "amount": amount,
        "category": category,
        "description": description,
        "date": when,
    }


def test_simple_january_dre() -> None:
    """One consultation of 1000 and a rent of 200 in January."""
    txs = [
        _tx("1", "revenue", 1000.0, "Consulta"),
        _tx("2", "expense", 200.0, "Aluguel"),
    ]

    dre = compute_dre(txs, JANUARY)

    assert dre.gross_revenue == pytest.approx(1000.0)
    assert dre.deductions == pytest.approx(0.0)
    assert dre.net_revenue == pytest.approx(1000.0)
    assert dre.cmv == pytest.approx(0.0)
    assert dre.gross_profit == pytest.approx(1000.0)
    assert dre.operating_expenses == pytest.approx(200.0)
    assert dre.operating_profit == pytest.approx(800.0)
    assert dre.taxes == pytest.approx(0.0)
    assert dre.net_profit == pytest.approx(800.0)
    assert dre.net_margin == pytest.approx(80.0)
    assert dre.gross_profit_margin == pytest.approx(100.0)
    assert dre.operating_margin == pytest.approx(80.0)
    assert dre.basis == "accrual"
    assert dre.period_label == "2025-01"


def test_full_waterfall() -> None:
    txs = [
        _tx("1", "revenue", 5000.0, "Consulta"),
        _tx("2", "revenue", 300.0, "Desconto fidelidade"),
        _tx("3", "revenue", -200.0, "Estorno"),
        _tx("4", "expense", 600.0, "Insumos"),
        _tx("5", "expense", 400.0, "Laboratório"),
        _tx("6", "expense", 1500.0, "Aluguel"),
        _tx("7", "expense", 350.0, "Impostos"),
        _tx("8", "expense", 50.0, "Taxa de comissão"),
    ]

    dre = compute_dre(txs, JANUARY)

    # Negative revenue is not gross revenue; the discount stays in it.
    assert dre.gross_revenue == pytest.approx(5300.0)
    assert dre.deductions == pytest.approx(500.0)
    assert dre.net_revenue == pytest.approx(4800.0)
    assert dre.cmv == pytest.approx(1000.0)
    assert dre.gross_profit == pytest.approx(3800.0)
    assert dre.operating_expenses == pytest.approx(1500.0)
    assert dre.operating_profit == pytest.approx(2300.0)
    # 'Taxa de comissão' is a tax, not a CMV
    assert dre.taxes == pytest.approx(400.0)
    assert dre.net_profit == pytest.approx(1900.0)
    assert dre.reconciles()


def test_period_filtering_excludes_other_months() -> None:
    txs = [
        _tx("1", "revenue", 1000.0, "Consulta", when=datetime(2025, 1, 31, 23, 0)),
        _tx("2", "revenue", 999.0, "Consulta", when=datetime(2025, 2, 1)),
        _tx("3", "expense", 100.0, "Aluguel", when=datetime(2024, 12, 31)),
    ]

    dre = compute_dre(txs, JANUARY)

    assert dre.gross_revenue == pytest.approx(1000.0)
    assert dre.operating_expenses == pytest.approx(0.0)


def test_cumulative_view_includes_history() -> None:
    txs = [
        _tx("1", "revenue", 1000.0, "Consulta", when=datetime(2023, 5, 1)),
        _tx("2", "revenue", 500.0, "Consulta", when=datetime(2025, 1, 10)),
        _tx("3", "revenue", 700.0, "Consulta", when=datetime(2025, 1, 11)),
    ]

    dre = compute_dre(txs, period_for(date(2025, 1, 10), "cumulative"))

    assert dre.gross_revenue == pytest.approx(1500.0)
    assert dre.basis == "cash"


def test_zero_revenue_margins_are_zero() -> None:
    dre = compute_dre([_tx("1", "expense", 300.0, "Aluguel")], JANUARY)

    assert dre.gross_revenue == 0.0
    assert dre.net_profit == pytest.approx(-300.0)
    assert dre.gross_profit_margin == 0.0
    assert dre.operating_margin == 0.0
    assert dre.net_margin == 0.0


def test_empty_input() -> None:
    dre = compute_dre([], JANUARY)
    assert dre.gross_revenue == 0.0
    assert dre.net_profit == 0.0
    assert dre.net_margin == 0.0


def test_dataframe_input_equivalent_to_records() -> None:
    txs = [
        _tx("1", "revenue", 1000.0, "Consulta"),
        _tx("2", "expense", 200.0, "Insumos"),
    ]
    assert compute_dre(pd.DataFrame(txs), JANUARY) == compute_dre(txs, JANUARY)


def test_epoch_millis_transaction_lands_in_its_month() -> None:
    txs = [
        Transaction(
            id="1",
            description="",
            amount=1000.0,
            type="revenue",
            category="Consulta",
            date=1736467200000,  # 2025-01-10T00:00:00Z
        )
    ]
    assert compute_dre(txs, JANUARY).gross_revenue == pytest.approx(1000.0)


def test_timezone_aware_dates_are_filtered_without_error() -> None:
    """ISO strings with an offset are compared in UTC against the window."""
    txs = [
        _tx("1", "revenue", 1000.0, "Consulta", when="2025-01-10T12:00:00Z"),
        _tx("2", "expense", 200.0, "Aluguel", when="2025-02-01T01:00:00+03:00"),
    ]
    frame = pd.DataFrame(txs)
    frame["date"] = pd.to_datetime(frame["date"], utc=True)

    from_records = compute_dre(txs, JANUARY)
    from_frame = compute_dre(frame, JANUARY)

    assert from_records.gross_revenue == pytest.approx(1000.0)
    assert from_records.operating_expenses == pytest.approx(200.0)
    assert from_frame == from_records


def test_compute_dre_is_pure() -> None:
    """Two calls with the same arguments give identical results and do
    not modify the input."""
    df = pd.DataFrame(
        [
            _tx("1", "revenue", 1234.56, "Consulta"),
            _tx("2", "expense", 78.9, "Produtos"),
            _tx("3", "expense", 12.3, "DAS"),
        ]
    )
    before = df.copy()

    first = compute_dre(df, JANUARY)
    second = compute_dre(df, JANUARY)

    assert first == second
    pd.testing.assert_frame_equal(df, before)


def test_waterfall_reconciles_on_random_sets() -> None:
    rng = random.Random(42)
    categories = [
        "Consulta",
        "Desconto",
        "Insumos",
        "Comissões",
        "Impostos",
        "Taxa de comissão",
        "Aluguel",
        "Marketing",
        "",
    ]
    for _ in range(50):
        txs = [
            _tx(
                str(i),
                rng.choice(["revenue", "expense"]),
                round(rng.uniform(-100, 2000), 2),
                rng.choice(categories),
            )
            for i in range(rng.randint(0, 30))
        ]
        dre = compute_dre(txs, JANUARY)
        total = dre.deductions + dre.cmv + dre.operating_expenses + dre.taxes + dre.net_profit
        assert dre.gross_revenue == pytest.approx(total, abs=1e-6)


def test_custom_taxonomy_is_used(tmp_path) -> None:
    path = tmp_path / "rules.toml"
    path.write_text(
        '[[rules]]\nbucket = "cmv"\ntype = "expense"\nkeywords = ["aluguel"]\n',
        encoding="utf-8",
    )

    dre = compute_dre(
        [_tx("1", "expense", 200.0, "Aluguel")], JANUARY, Taxonomy.from_toml(path)
    )

    assert dre.cmv == pytest.approx(200.0)
    assert dre.operating_expenses == 0.0


def test_malformed_record_raises() -> None:
    with pytest.raises(InvalidTransactionError):
        compute_dre([{"id": "1", "amount": 10.0, "date": datetime(2025, 1, 1)}], JANUARY)


def test_safe_pct() -> None:
    assert safe_pct(5, 0) == 0.0
    assert safe_pct(25, 200) == pytest.approx(12.5)
