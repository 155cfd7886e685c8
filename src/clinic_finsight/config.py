# Clinic FinSight - Financial classification & reporting engine for clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for Clinic FinSight.

This module is responsible for:
- loading the application configuration from a TOML file,
- loading an optional classification taxonomy file,
- exposing typed dataclasses used by the rest of the application.

The engine itself never reads configuration: callers load an AppConfig
once and pass its parts (TaxConfig, PricingInputs, Taxonomy, ...)
explicitly to each computation.
"""

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .periods import PERIOD_MODES
from .pipeline import DEFAULT_OPEN_STATUSES
from .pricing import PricingInputs
from .tax import TaxConfig
from .taxonomy import DEFAULT_TAXONOMY, Taxonomy


@dataclass(frozen=True)
class PipelineConfig:
    """CRM projection settings."""

    conversion_pct: float
    open_statuses: tuple[str, ...]


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for Clinic FinSight.

    This aggregates:
    - the tax regime used for tax provisions,
    - the default inputs of the pricing calculator,
    - CRM pipeline projection settings,
    - the default period mode of reports,
    - the classification taxonomy (default rules or a rules file),
    - display options.
    """

    tax: TaxConfig
    pricing: PricingInputs
    pipeline: PipelineConfig
    default_period_mode: str
    taxonomy_file: Optional[Path]
    decimals: int

    def load_taxonomy(self) -> Taxonomy:
        """Return the configured taxonomy (default rules if no file)."""
        if self.taxonomy_file is None:
            return DEFAULT_TAXONOMY
        return Taxonomy.from_toml(self.taxonomy_file)


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    """Return a table of the config, or an empty mapping if absent/invalid."""
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        return {}
    return section


def _float(section: Mapping[str, Any], key: str, default: float) -> float:
    value = section.get(key, default)
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid value for {key!r} in the configuration. Expected a number."
        ) from exc


def _parse_pricing(section: Mapping[str, Any]) -> PricingInputs:
    defaults = PricingInputs()
    return PricingInputs(
        fixed_expenses_total=0.0,
        hours_per_month=_float(section, "hours_per_month", defaults.hours_per_month),
        procedure_minutes=_float(
            section, "procedure_minutes", defaults.procedure_minutes
        ),
        material_cost=_float(section, "material_cost", defaults.material_cost),
        desired_margin_pct=_float(
            section, "desired_margin_pct", defaults.desired_margin_pct
        ),
        tax_pct=_float(section, "tax_pct", defaults.tax_pct),
        commission_pct=_float(section, "commission_pct", defaults.commission_pct),
        card_fee_pct=_float(section, "card_fee_pct", defaults.card_fee_pct),
    )


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the Clinic FinSight configuration from a TOML file.

    Expected top-level sections (all optional)
    ------------------------------------------
    [tax]
        regime (MEI, SIMPLES, PRESUMIDO) and rate (percent). The rate
        defaults to the regime's usual rate.

    [pricing]
        Default inputs of the pricing calculator.

    [pipeline]
        conversion_pct (percent) and open_statuses (list of quote
        statuses still open).

    [periods]
        default_mode: monthly, quarterly, yearly, custom or cumulative.

    [taxonomy]
        rules_file: TOML file with [[rules]] tables replacing the default
        classification keywords. Relative to the config file directory.

    [display]
        decimals: rounding of amounts in statement views.

    Parameters
    ----------
    config_path : str, optional
        Path to the TOML file (default: ./clinic_finsight_config.toml).

    Returns
    -------
    AppConfig
        Parsed and validated configuration.
    """
    if config_path is None:
        config_file = Path("clinic_finsight_config.toml").resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    # 1) Tax regime
    tax_section = _section(raw, "tax")
    raw_rate = tax_section.get("rate")
    tax = TaxConfig.for_regime(
        str(tax_section.get("regime") or "SIMPLES"),
        None if raw_rate is None else _float(tax_section, "rate", 0.0),
    )

    # 2) Pricing defaults
    pricing = _parse_pricing(_section(raw, "pricing"))

    # 3) Pipeline
    pipeline_section = _section(raw, "pipeline")
    raw_statuses = pipeline_section.get("open_statuses") or list(DEFAULT_OPEN_STATUSES)
    if isinstance(raw_statuses, str):
        raw_statuses = [raw_statuses]
    pipeline = PipelineConfig(
        conversion_pct=_float(pipeline_section, "conversion_pct", 30.0),
        open_statuses=tuple(str(s).strip().lower() for s in raw_statuses),
    )

    # 4) Periods
    periods_section = _section(raw, "periods")
    default_mode = str(periods_section.get("default_mode", "monthly"))
    if default_mode not in PERIOD_MODES:
        raise ValueError(
            f"Invalid periods.default_mode {default_mode!r}, expected one of: "
            f"{', '.join(PERIOD_MODES)}."
        )

    # 5) Taxonomy
    taxonomy_section = _section(raw, "taxonomy")
    rules_raw = taxonomy_section.get("rules_file")
    taxonomy_file = (base_dir / str(rules_raw)).resolve() if rules_raw else None

    # 6) Display options
    display_section = _section(raw, "display")
    try:
        decimals = int(display_section.get("decimals", 2))
    except (TypeError, ValueError):
        decimals = 2

    return AppConfig(
        tax=tax,
        pricing=pricing,
        pipeline=pipeline,
        default_period_mode=default_mode,
        taxonomy_file=taxonomy_file,
        decimals=decimals,
    )
