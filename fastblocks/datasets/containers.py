"""Data containers backed by tables and arrays."""
from __future__ import annotations
import pandas as pd


class TableDataset:
    """Rows of a `pandas.DataFrame` as observations (`pandas.Series`)."""

    def __init__(self, table: pd.DataFrame):
        if not isinstance(table, pd.DataFrame):
            raise ValueError(f"TableDataset needs a pandas.DataFrame, got {type(table).__name__}")
        self.table = table

    def __len__(self):
        return len(self.table)

    def __getitem__(self, idx):
        return self.table.iloc[int(idx)]

    @property
    def columns(self):
        return list(self.table.columns)

    def __repr__(self):
        return f"TableDataset({len(self)} rows, {len(self.table.columns)} columns)"
