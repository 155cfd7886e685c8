# Clinic FinSight - Financial classification & reporting engine for clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Transaction records for Clinic FinSight.

This module normalizes the financial transactions handed over by the
data-access layer into a simple, consistent structure suitable for
classification and aggregation by the engine.

Accepted inputs
---------------
The engine accepts any of the following:

1) A pandas DataFrame with (at least) the columns
       id, date, type, amount, category, description
2) An iterable of ``Transaction`` objects.
3) An iterable of mappings (e.g. JSON objects coming from the API),
   using either camelCase (``patientName``, ``paymentMethod``,
   ``isPaid``) or snake_case keys.

Dates
-----
Integer dates are interpreted as milliseconds since the Unix epoch (UTC)
and converted to naive datetimes. ``date`` objects become midnight,
ISO strings are parsed. Timezone-aware values are converted to UTC and
made naive, so every date compares against the naive period bounds.

Output schema
-------------
``transactions_to_frame`` always returns a DataFrame with these columns:

    - ``id``             (str)
    - ``date``           (datetime64[ns])
    - ``type``           (str, "revenue" or "expense")
    - ``amount``         (float)
    - ``category``       (str)
    - ``description``    (str)
    - ``patient_name``   (str)
    - ``payment_method`` (str)
    - ``is_paid``        (bool)

The engine does not clean amounts: missing or non-numeric values are
expected to be replaced upstream. Only structurally malformed records
raise ``InvalidTransactionError``.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Optional, Union

import pandas as pd

TRANSACTION_TYPES: tuple[str, ...] = ("revenue", "expense")

FRAME_COLUMNS: list[str] = [
    "id",
    "date",
    "type",
    "amount",
    "category",
    "description",
    "patient_name",
    "payment_method",
    "is_paid",
]

# Required keys of a raw record. 'amount' is required because cleaning it is
# the job of the validation layer, not of the engine.
_REQUIRED_FIELDS: tuple[str, ...] = ("type", "date", "amount")

_ALIASES: dict[str, str] = {
    "patientName": "patient_name",
    "paymentMethod": "payment_method",
    "isPaid": "is_paid",
}


class InvalidTransactionError(ValueError):
    """Raised when a transaction record is structurally malformed."""

    def __init__(self, message: str, transaction_id: Optional[str] = None):
        super().__init__(message)
        self.transaction_id = transaction_id


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def to_datetime(value: Union[int, float, date, datetime, str]) -> datetime:
    """Convert a raw transaction date into a naive datetime.

    Integers and floats are epoch milliseconds, strings are ISO dates.
    """
    if isinstance(value, bool):
        raise TypeError(f"Invalid transaction date: {value!r}")
    if isinstance(value, (int, float)):
        return pd.Timestamp(int(value), unit="ms").to_pydatetime()
    if isinstance(value, datetime):
        return _naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        return _naive_utc(datetime.fromisoformat(value.strip()))
    raise TypeError(f"Invalid transaction date: {value!r}")


def _parse_tags(raw: Any) -> tuple[str, ...]:
    if raw is None or raw == "":
        return ()
    if isinstance(raw, str):
        return tuple(t.strip() for t in raw.split(",") if t.strip())
    return tuple(str(t) for t in raw)


@dataclass(frozen=True)
class Transaction:
    """A single financial transaction as produced by the data layer.

    Attributes:
        id: Record identifier.
        description: Free text label.
        amount: Amount, positive by convention. A negative revenue amount
            signals a deduction (refund, discount).
        type: Either 'revenue' or 'expense'.
        category: Free text category chosen by the user.
        date: Booking date (naive datetime).
        patient_name: Optional patient the transaction relates to.
        payment_method: Optional payment method label.
        is_paid: Whether the transaction has been settled.
        tags: Optional free tags.
    """

    id: str
    description: str
    amount: float
    type: str
    category: str
    date: datetime
    patient_name: Optional[str] = None
    payment_method: Optional[str] = None
    is_paid: Optional[bool] = None
    tags: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # Records built directly may carry epoch milliseconds or aware dates.
        try:
            when = to_datetime(self.date)
        except (TypeError, ValueError) as exc:
            raise InvalidTransactionError(
                f"Transaction {self.id or '<no id>'} has an invalid date "
                f"{self.date!r}.",
                transaction_id=self.id or None,
            ) from exc
        object.__setattr__(self, "date", when)

    @property
    def text(self) -> str:
        """Category and description joined, used for keyword matching."""
        return f"{self.category} {self.description}"

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "Transaction":
        """Build a Transaction from a raw record.

        Raises:
            InvalidTransactionError: if 'type', 'date' or 'amount' is
                missing, or if 'type' is not 'revenue'/'expense'.
        """
        data = {_ALIASES.get(str(k), str(k)): v for k, v in raw.items()}
        tx_id = str(data.get("id", "") or "")

        missing = [f for f in _REQUIRED_FIELDS if data.get(f) is None]
        if missing:
            raise InvalidTransactionError(
                f"Transaction {tx_id or '<no id>'} is missing required "
                f"field(s): {', '.join(missing)}.",
                transaction_id=tx_id or None,
            )

        tx_type = str(data["type"]).strip().lower()
        if tx_type not in TRANSACTION_TYPES:
            raise InvalidTransactionError(
                f"Transaction {tx_id or '<no id>'} has an invalid type "
                f"{data['type']!r}, expected 'revenue' or 'expense'.",
                transaction_id=tx_id or None,
            )

        try:
            when = to_datetime(data["date"])
        except (TypeError, ValueError) as exc:
            raise InvalidTransactionError(
                f"Transaction {tx_id or '<no id>'} has an invalid date "
                f"{data['date']!r}.",
                transaction_id=tx_id or None,
            ) from exc

        is_paid = data.get("is_paid")

        return cls(
            id=tx_id,
            description=str(data.get("description") or ""),
            amount=float(data["amount"]),
            type=tx_type,
            category=str(data.get("category") or ""),
            date=when,
            patient_name=data.get("patient_name"),
            payment_method=data.get("payment_method"),
            is_paid=None if is_paid is None else bool(is_paid),
            tags=_parse_tags(data.get("tags")),
        )


@dataclass(frozen=True)
class PipelineQuote:
    """An open or closed sales quote owned by the CRM.

    Only ``total_amount`` and ``status`` are used by the engine.
    """

    total_amount: float
    status: str
    id: Optional[str] = None
    patient_name: Optional[str] = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "PipelineQuote":
        total = raw.get("total_amount", raw.get("totalAmount"))
        if total is None or raw.get("status") is None:
            raise ValueError("Quote record requires 'totalAmount' and 'status'.")
        return cls(
            total_amount=float(total),
            status=str(raw["status"]).strip().lower(),
            id=raw.get("id"),
            patient_name=raw.get("patient_name", raw.get("patientName")),
        )


def _transaction_to_row(t: Transaction) -> dict[str, object]:
    return {
        "id": t.id,
        "date": t.date,
        "type": t.type,
        "amount": t.amount,
        "category": t.category,
        "description": t.description,
        "patient_name": t.patient_name or "",
        "payment_method": t.payment_method or "",
        "is_paid": bool(t.is_paid),
    }


def _frame_from_dataframe(df: pd.DataFrame) -> pd.DataFrame:
    d = df.rename(columns={k: v for k, v in _ALIASES.items() if k in df.columns})
    missing = [c for c in _REQUIRED_FIELDS if c not in d.columns]
    if missing:
        raise InvalidTransactionError(
            f"Transactions DataFrame is missing required column(s): "
            f"{', '.join(missing)}."
        )
    if d[list(_REQUIRED_FIELDS)].isna().any().any():
        raise InvalidTransactionError(
            "Transactions DataFrame has empty values in 'type', 'date' or 'amount'."
        )

    out = d.copy()
    out["type"] = out["type"].astype(str).str.strip().str.lower()
    invalid = ~out["type"].isin(TRANSACTION_TYPES)
    if invalid.any():
        bad = out.loc[invalid, "type"].iloc[0]
        raise InvalidTransactionError(
            f"Invalid transaction type {bad!r}, expected 'revenue' or 'expense'."
        )

    dates = out["date"]
    if pd.api.types.is_numeric_dtype(dates):
        out["date"] = pd.to_datetime(dates.astype("int64"), unit="ms")
    elif isinstance(dates.dtype, pd.DatetimeTZDtype):
        out["date"] = dates.dt.tz_convert("UTC").dt.tz_localize(None)
    elif pd.api.types.is_datetime64_dtype(dates):
        out["date"] = dates
    else:
        # Mixed strings, dates and datetimes go through the record path.
        try:
            out["date"] = pd.to_datetime(dates.map(to_datetime))
        except (TypeError, ValueError) as exc:
            raise InvalidTransactionError(
                "Transactions DataFrame has invalid values in 'date'."
            ) from exc

    defaults: dict[str, object] = {
        "id": "",
        "category": "",
        "description": "",
        "patient_name": "",
        "payment_method": "",
        "is_paid": False,
    }
    for col, default in defaults.items():
        if col not in out.columns:
            out[col] = default
        else:
            out[col] = out[col].fillna(default)

    out["amount"] = out["amount"].astype(float)
    for col in ("id", "category", "description"):
        out[col] = out[col].astype(str)
    return out[FRAME_COLUMNS].reset_index(drop=True)


def transactions_to_frame(
    transactions: Union[pd.DataFrame, Iterable[Union[Transaction, Mapping[str, Any]]]],
) -> pd.DataFrame:
    """Normalize transactions into the engine's DataFrame schema.

    Args:
        transactions: A DataFrame, or an iterable of Transaction objects
            and/or raw mappings.

    Returns:
        A new DataFrame with the columns listed in ``FRAME_COLUMNS``.
        The input is never modified.

    Raises:
        InvalidTransactionError: for structurally malformed records.
    """
    if isinstance(transactions, pd.DataFrame):
        return _frame_from_dataframe(transactions)

    rows: list[dict[str, object]] = []
    for item in transactions:
        t = item if isinstance(item, Transaction) else Transaction.from_mapping(item)
        rows.append(_transaction_to_row(t))

    if not rows:
        empty = pd.DataFrame({c: pd.Series(dtype="object") for c in FRAME_COLUMNS})
        empty["date"] = pd.to_datetime(empty["date"])
        empty["amount"] = empty["amount"].astype(float)
        empty["is_paid"] = empty["is_paid"].astype(bool)
        return empty

    out = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    out["date"] = pd.to_datetime(out["date"])
    out["amount"] = out["amount"].astype(float)
    return out


def quotes_from_records(
    quotes: Iterable[Union[PipelineQuote, Mapping[str, Any]]],
) -> list[PipelineQuote]:
    """Normalize CRM quote records into PipelineQuote objects."""
    return [
        q if isinstance(q, PipelineQuote) else PipelineQuote.from_mapping(q)
        for q in quotes
    ]
