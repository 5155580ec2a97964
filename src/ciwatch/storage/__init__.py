"""
Storage for job history.

This module provides:
- A common DataStorage interface with Parquet and CSV backends (Polars)
- The HistoryStore holding each job's previous records and metric trend
"""

from .base import DataStorage
from .csv_storage import CsvStorage
from .factory import create_storage
from .history import HistoryStore, TREND_SCHEMA, empty_trend
from .parquet_storage import ParquetStorage

__all__ = [
    "CsvStorage",
    "DataStorage",
    "HistoryStore",
    "ParquetStorage",
    "TREND_SCHEMA",
    "create_storage",
    "empty_trend",
]
