from __future__ import annotations

from pathlib import Path
from typing import List

import pandas as pd

from wealth_core.domain.models import Snapshot


REQUIRED_COLUMNS = {"year", "month", "total_net_worth"}
FLAG_COLUMNS = {"is_dummy"}


def load_snapshots(csv_path: str | Path) -> List[Snapshot]:
    """
    Read monthly snapshots from CSV. Any column besides year, month,
    total_net_worth and is_dummy is an asset-class amount.
    """
    path = Path(csv_path)
    if not path.exists():
        raise FileNotFoundError(path)

    df = pd.read_csv(path)
    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise ValueError(f"Missing columns in snapshot CSV: {missing}")

    duplicated = df.duplicated(subset=["year", "month"], keep=False)
    if duplicated.any():
        keys = sorted({(int(r.year), int(r.month)) for r in df[duplicated].itertuples()})
        raise ValueError(f"Duplicate snapshots for months: {keys}")

    class_columns = [c for c in df.columns if c not in REQUIRED_COLUMNS | FLAG_COLUMNS]
    if class_columns:
        df[class_columns] = df[class_columns].fillna(0.0)
    if "is_dummy" in df.columns:
        df["is_dummy"] = df["is_dummy"].fillna(False).astype(bool)

    snapshots: List[Snapshot] = []
    for _, row in df.sort_values(["year", "month"]).iterrows():
        snapshots.append(
            Snapshot(
                year=int(row["year"]),
                month=int(row["month"]),
                total_net_worth=float(row["total_net_worth"]),
                by_asset_class={c: float(row[c]) for c in class_columns},
                is_dummy=bool(row["is_dummy"]) if "is_dummy" in df.columns else False,
            )
        )
    return snapshots
