from pathlib import Path

import pytest

from clinic_finsight.config import load_app_config
from clinic_finsight.taxonomy import DEFAULT_TAXONOMY, Bucket
from clinic_finsight.tax import TaxRegime
from clinic_finsight.transactions import Transaction


def _write(path: Path, content: str) -> Path:
    path.write_text(content, encoding="utf-8")
    return path


def test_load_app_config_defaults(tmp_path: Path) -> None:
    """An empty file gives the built-in defaults."""
    cfg = load_app_config(str(_write(tmp_path / "cfg.toml", "")))

    assert cfg.tax.regime is TaxRegime.SIMPLES
    assert cfg.tax.rate == pytest.approx(6.0)
    assert cfg.pricing.hours_per_month == pytest.approx(160.0)
    assert cfg.pipeline.conversion_pct == pytest.approx(30.0)
    assert cfg.pipeline.open_statuses == ("draft", "sent")
    assert cfg.default_period_mode == "monthly"
    assert cfg.decimals == 2
    assert cfg.taxonomy_file is None
    assert cfg.load_taxonomy() is DEFAULT_TAXONOMY


def test_load_app_config_sections(tmp_path: Path) -> None:
    _write(
        tmp_path / "rules.toml",
        """
[[rules]]
bucket = "cmv"
keywords = ["supplies"]
""",
    )
    cfg_file = _write(
        tmp_path / "cfg.toml",
        """
[tax]
regime = "presumido"

[pricing]
hours_per_month = 120
card_fee_pct = 3.5

[pipeline]
conversion_pct = 45
open_statuses = ["Sent"]

[periods]
default_mode = "quarterly"

[taxonomy]
rules_file = "rules.toml"

[display]
decimals = 0
""",
    )

    cfg = load_app_config(str(cfg_file))

    assert cfg.tax.regime is TaxRegime.PRESUMIDO
    assert cfg.tax.rate == pytest.approx(11.33)
    assert cfg.pricing.hours_per_month == pytest.approx(120.0)
    assert cfg.pricing.card_fee_pct == pytest.approx(3.5)
    assert cfg.pricing.tax_pct == pytest.approx(6.0)
    assert cfg.pipeline.conversion_pct == pytest.approx(45.0)
    assert cfg.pipeline.open_statuses == ("sent",)
    assert cfg.default_period_mode == "quarterly"
    assert cfg.decimals == 0
    assert cfg.taxonomy_file == (tmp_path / "rules.toml").resolve()

    taxonomy = cfg.load_taxonomy()
    tx = Transaction.from_mapping(
        {"type": "expense", "amount": 10.0, "category": "Office supplies", "date": "2025-01-02"}
    )
    assert taxonomy.classify(tx) is Bucket.CMV


def test_explicit_tax_rate(tmp_path: Path) -> None:
    cfg = load_app_config(
        str(_write(tmp_path / "cfg.toml", '[tax]\nregime = "SIMPLES"\nrate = 8.5\n'))
    )
    assert cfg.tax.rate == pytest.approx(8.5)


def test_missing_config_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_app_config(str(tmp_path / "missing.toml"))


@pytest.mark.parametrize(
    "content",
    [
        "[tax\nregime = 'MEI'",  # invalid TOML
        '[periods]\ndefault_mode = "weekly"\n',
        '[tax]\nregime = "LUCRO_REAL"\n',
        '[pricing]\nhours_per_month = "many"\n',
    ],
)
def test_invalid_config(tmp_path: Path, content: str) -> None:
    with pytest.raises(ValueError):
        load_app_config(str(_write(tmp_path / "cfg.toml", content)))


def test_shipped_config_and_rules_match_defaults() -> None:
    """The sample config points at a rules file equivalent to the
    built-in Portuguese taxonomy."""
    root = Path(__file__).resolve().parents[1]
    cfg = load_app_config(str(root / "clinic_finsight_config.toml"))

    taxonomy = cfg.load_taxonomy()

    assert [r.bucket for r in taxonomy.rules] == [r.bucket for r in DEFAULT_TAXONOMY.rules]
    assert [r.keywords for r in taxonomy.rules] == [
        r.keywords for r in DEFAULT_TAXONOMY.rules
    ]
