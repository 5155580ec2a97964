"""
CSV history tables.

CSV keeps history files readable in a browser on an auxiliary branch and
greppable from shell steps, at the cost of type information: every column
is read back as a string and callers cast what they need.
"""

from pathlib import Path
from typing import List, Optional

import polars as pl

from .base import DataStorage


class CsvStorage(DataStorage):
    """Plain CSV tables."""

    extension = "csv"

    def _write_table(self, df: pl.DataFrame, path: Path) -> None:
        df.write_csv(path)

    def _read_table(self, path: Path, columns: Optional[List[str]]) -> pl.DataFrame:
        # infer_schema_length=0 reads every column as a string
        return pl.read_csv(path, columns=columns, infer_schema_length=0)
