"""
Parquet history tables.
"""

import logging
from pathlib import Path
from typing import List, Literal, Optional

import polars as pl

from .base import DataStorage

logger = logging.getLogger(__name__)


class ParquetStorage(DataStorage):
    """
    Compressed Parquet tables.

    With ``csv_copy`` every table also gets a ``.csv`` sibling, so a history
    branch stays readable in the browser.
    """

    extension = "parquet"

    def __init__(
        self,
        compression: Literal["snappy", "gzip", "brotli", "lz4", "zstd"] = "snappy",
        csv_copy: bool = False,
    ):
        self.compression = compression
        self.csv_copy = csv_copy
        logger.debug(f"Initialized ParquetStorage with compression: {compression}")

    def _write_table(self, df: pl.DataFrame, path: Path) -> None:
        df.write_parquet(path, compression=self.compression)
        if self.csv_copy:
            df.write_csv(path.with_suffix(".csv"))

    def _read_table(self, path: Path, columns: Optional[List[str]]) -> pl.DataFrame:
        return pl.read_parquet(path, columns=columns) if columns else pl.read_parquet(path)
