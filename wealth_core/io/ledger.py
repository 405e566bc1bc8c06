from __future__ import annotations

from pathlib import Path
from typing import List

import pandas as pd

from wealth_core.domain.models import Transaction


REQUIRED_COLUMNS = {"date", "amount", "type"}
TRANSACTION_TYPES = {"income", "fixed", "variable", "debt"}


def load_ledger(csv_path: str | Path) -> List[Transaction]:
    """
    Read transactions from CSV (date, amount, type[, category_id]).
    Amounts are kept as stored: income positive, expenses negative.
    """
    path = Path(csv_path)
    if not path.exists():
        raise FileNotFoundError(path)

    df = pd.read_csv(path, dtype={"category_id": str})
    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise ValueError(f"Missing columns in ledger CSV: {missing}")

    df["date"] = pd.to_datetime(df["date"]).dt.date
    df["type"] = df["type"].astype(str).str.lower()
    unknown = set(df["type"]) - TRANSACTION_TYPES
    if unknown:
        raise ValueError(f"Unknown transaction types in ledger CSV: {unknown}")

    entries: List[Transaction] = []
    for _, row in df.iterrows():
        category = row.get("category_id")
        entries.append(
            Transaction(
                date=row["date"],
                amount=float(row["amount"]),
                type=row["type"],
                category_id=None if pd.isna(category) else str(category),
            )
        )
    return entries
