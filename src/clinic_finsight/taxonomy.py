# Clinic FinSight - Financial classification & reporting engine for clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Classification taxonomy for Clinic FinSight.

This module defines how loosely-tagged transactions are assigned to the
accounting buckets of the DRE (profit-and-loss waterfall):

- GROSS_REVENUE      → any revenue transaction,
- DEDUCTION          → revenue flagged as discount / refund / cancellation
                       (still counted once in gross revenue),
- TAX_ON_PROFIT      → taxes (DAS, imposto, taxa),
- CMV                → variable costs tied to service delivery
                       (supplies, products, commissions, laboratory),
- OPERATING_EXPENSE  → every other expense (the catch-all bucket).

Rules are data, not conditionals: a Taxonomy is an ordered list of
ClassificationRule objects, evaluated top to bottom, first match wins.
The default rule set carries the Portuguese keywords used by clinics in
Brazil, and an alternative rule set can be loaded from a TOML file.

Precedence
----------
The tax rule is evaluated before the CMV rule. A transaction whose text
matches both keyword sets (e.g. "taxa de comissão") is therefore a tax,
never a CMV. This keeps the expense buckets a strict partition.

Matching
--------
Keywords are matched as substrings of "category + description", after
case folding and accent stripping on both sides.
"""

import logging
import tomllib
import unicodedata
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd

from .transactions import Transaction

logger = logging.getLogger(__name__)


class Bucket(str, Enum):
    """Accounting bucket of the DRE waterfall."""

    GROSS_REVENUE = "gross_revenue"
    DEDUCTION = "deduction"
    CMV = "cmv"
    OPERATING_EXPENSE = "operating_expense"
    TAX_ON_PROFIT = "tax_on_profit"


EXPENSE_BUCKETS: tuple[Bucket, ...] = (
    Bucket.CMV,
    Bucket.TAX_ON_PROFIT,
    Bucket.OPERATING_EXPENSE,
)


def normalize_text(s: str) -> str:
    """Lowercase and strip accents ('Comissão' → 'comissao')."""
    decomposed = unicodedata.normalize("NFKD", str(s).casefold())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


@dataclass(frozen=True)
class ClassificationRule:
    """One (predicate, bucket) entry of the taxonomy.

    Attributes:
        bucket: Bucket assigned when the rule matches.
        transaction_type: 'revenue' or 'expense'; the rule never matches
            transactions of the other type.
        keywords: Substrings searched in the normalized category and
            description. Stored normalized.
        negative_amount: When True, a negative amount matches the rule
            even without a keyword hit (used for deductions).
    """

    bucket: Bucket
    transaction_type: str
    keywords: tuple[str, ...]
    negative_amount: bool = False

    def matches(self, tx_type: str, amount: float, text: str) -> bool:
        if tx_type != self.transaction_type:
            return False
        if self.negative_amount and amount < 0:
            return True
        return any(k in text for k in self.keywords)


def _rule(
    bucket: Bucket,
    transaction_type: str,
    keywords: Iterable[str],
    negative_amount: bool = False,
) -> ClassificationRule:
    return ClassificationRule(
        bucket=bucket,
        transaction_type=transaction_type,
        keywords=tuple(normalize_text(k) for k in keywords if str(k).strip()),
        negative_amount=negative_amount,
    )


class Taxonomy:
    """Ordered set of classification rules.

    Revenue transactions are either DEDUCTION (first matching revenue
    rule) or GROSS_REVENUE. Expense transactions get the bucket of the
    first matching expense rule, or OPERATING_EXPENSE when none matches.
    Classification never raises for unknown text.
    """

    def __init__(self, rules: Iterable[ClassificationRule]):
        self.rules: tuple[ClassificationRule, ...] = tuple(rules)
        for r in self.rules:
            if r.bucket in (Bucket.GROSS_REVENUE, Bucket.OPERATING_EXPENSE):
                raise ValueError(
                    f"Bucket {r.bucket.value!r} is a fallback bucket and cannot "
                    "be assigned by a rule."
                )

    def __repr__(self) -> str:
        return f"Taxonomy({len(self.rules)} rules)"

    def _classify_values(self, tx_type: str, amount: float, raw_text: str) -> Bucket:
        text = normalize_text(raw_text)
        for r in self.rules:
            if r.matches(tx_type, amount, text):
                return r.bucket
        return Bucket.GROSS_REVENUE if tx_type == "revenue" else Bucket.OPERATING_EXPENSE

    def classify(self, t: Transaction) -> Bucket:
        """Return the single bucket of a transaction."""
        return self._classify_values(t.type, t.amount, t.text)

    def matching_buckets(self, t: Transaction) -> list[Bucket]:
        """Return every bucket whose rule matches, ignoring precedence.

        Useful to audit transactions matching more than one keyword set.
        """
        text = normalize_text(t.text)
        found: list[Bucket] = []
        for r in self.rules:
            if r.matches(t.type, t.amount, text) and r.bucket not in found:
                found.append(r.bucket)
        return found

    def classify_frame(self, transactions: pd.DataFrame) -> pd.DataFrame:
        """Return a copy of a normalized transactions DataFrame with a
        'bucket' column holding the bucket values as plain strings
        (compare against ``Bucket.X.value``)."""
        out = transactions.copy()
        if out.empty:
            out["bucket"] = pd.Series(dtype="object")
            return out
        out["bucket"] = pd.Series(
            [
                self._classify_values(tx_type, float(amount), f"{cat} {desc}").value
                for tx_type, amount, cat, desc in zip(
                    out["type"], out["amount"], out["category"], out["description"]
                )
            ],
            index=out.index,
            dtype="object",
        )
        return out

    @staticmethod
    def from_rules_data(data: Mapping[str, Any]) -> "Taxonomy":
        """Build a Taxonomy from parsed TOML data with [[rules]] tables.

        Each table accepts: bucket, type, keywords, negative_amount.
        """
        raw_rules = data.get("rules")
        if not isinstance(raw_rules, list) or not raw_rules:
            raise ValueError("Taxonomy file must define at least one [[rules]] table.")

        rules: list[ClassificationRule] = []
        for idx, cfg in enumerate(raw_rules, start=1):
            if not isinstance(cfg, Mapping):
                raise ValueError(f"Invalid taxonomy rule #{idx}, expected a table.")
            try:
                bucket = Bucket(str(cfg["bucket"]))
            except (KeyError, ValueError) as exc:
                raise ValueError(
                    f"Taxonomy rule #{idx} has a missing or unknown bucket."
                ) from exc
            tx_type = str(cfg.get("type", "expense"))
            if tx_type not in ("revenue", "expense"):
                raise ValueError(f"Taxonomy rule #{idx} has an invalid type {tx_type!r}.")
            keywords = cfg.get("keywords") or []
            if isinstance(keywords, str):
                keywords = [keywords]
            rules.append(
                _rule(
                    bucket,
                    tx_type,
                    [str(k) for k in keywords],
                    negative_amount=bool(cfg.get("negative_amount", False)),
                )
            )
        return Taxonomy(rules)

    @staticmethod
    def from_toml(path: Union[str, Path]) -> "Taxonomy":
        """Load a Taxonomy from a TOML rules file."""
        p = Path(path)
        if not p.is_file():
            raise FileNotFoundError(f"Taxonomy file not found: {p}")
        try:
            data = tomllib.loads(p.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as exc:
            raise ValueError(f"Failed to parse TOML taxonomy file: {p}") from exc
        return Taxonomy.from_rules_data(data)


DEFAULT_TAXONOMY = Taxonomy(
    [
        _rule(
            Bucket.DEDUCTION,
            "revenue",
            ["desconto", "devolução", "cancelamento"],
            negative_amount=True,
        ),
        # Tax precedes CMV: "taxa de comissão" is a tax.
        _rule(Bucket.TAX_ON_PROFIT, "expense", ["imposto", "taxa", "das"]),
        _rule(Bucket.CMV, "expense", ["insumo", "produto", "comiss", "laborat"]),
    ]
)


def classify(t: Transaction, taxonomy: Optional[Taxonomy] = None) -> Bucket:
    """Return the bucket of a transaction (default taxonomy if None)."""
    return (taxonomy or DEFAULT_TAXONOMY).classify(t)


def is_deduction(t: Transaction, taxonomy: Optional[Taxonomy] = None) -> bool:
    return classify(t, taxonomy) is Bucket.DEDUCTION


def is_cmv(t: Transaction, taxonomy: Optional[Taxonomy] = None) -> bool:
    return classify(t, taxonomy) is Bucket.CMV


def is_tax_on_profit(t: Transaction, taxonomy: Optional[Taxonomy] = None) -> bool:
    return classify(t, taxonomy) is Bucket.TAX_ON_PROFIT


def is_operating_expense(t: Transaction, taxonomy: Optional[Taxonomy] = None) -> bool:
    return classify(t, taxonomy) is Bucket.OPERATING_EXPENSE


def find_ambiguous(
    transactions: Iterable[Transaction], taxonomy: Optional[Taxonomy] = None
) -> list[tuple[Transaction, list[Bucket]]]:
    """Return expense transactions matching more than one expense rule.

    Each entry pairs the transaction with all matched buckets; the first
    one is the bucket actually assigned.
    """
    tax = taxonomy or DEFAULT_TAXONOMY
    ambiguous: list[tuple[Transaction, list[Bucket]]] = []
    for t in transactions:
        if t.type != "expense":
            continue
        buckets = tax.matching_buckets(t)
        if len(buckets) > 1:
            logger.warning(
                "Transaction %s matches %s, classified as %s",
                t.id,
                ", ".join(b.value for b in buckets),
                buckets[0].value,
            )
            ambiguous.append((t, buckets))
    return ambiguous
