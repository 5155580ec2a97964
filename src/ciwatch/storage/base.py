"""
Abstract base class for history storage backends.

A backend only knows how to write and read one table format. Path handling,
JSON documents and error logging are shared here so the history store can
treat a missing file the same way for every format.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

import polars as pl

logger = logging.getLogger(__name__)


class DataStorage(ABC):
    """Base class of the table formats used for job history."""

    # File extension (without dot) of tables written by this backend.
    extension = ""

    @abstractmethod
    def _write_table(self, df: pl.DataFrame, path: Path) -> None:
        """Write ``df`` to ``path``; the parent directory exists."""

    @abstractmethod
    def _read_table(self, path: Path, columns: Optional[List[str]]) -> pl.DataFrame:
        """Read an existing table, optionally only ``columns``."""

    def table_path(self, directory: Path, name: str) -> Path:
        return Path(directory) / f"{name}.{self.extension}"

    def save_table(self, df: pl.DataFrame, path: Path) -> None:
        """
        Write a table, creating parent directories.

        Raises:
            Exception: Whatever the backend raised, after logging it
        """
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            self._write_table(df, path)
        except Exception as e:
            logger.error(f"Failed to save table to {path}: {e}")
            raise
        logger.debug(f"Saved table with {len(df)} rows to {path}")

    def load_table(self, path: Path, columns: Optional[List[str]] = None) -> Optional[pl.DataFrame]:
        """
        Read a table.

        Args:
            path: Table file
            columns: Only load these columns

        Returns:
            The table, or None if the file does not exist
        """
        path = Path(path)
        if not path.exists():
            return None
        try:
            df = self._read_table(path, columns)
        except Exception as e:
            logger.error(f"Failed to load table from {path}: {e}")
            raise
        logger.debug(f"Loaded table with {len(df)} rows from {path}")
        return df

    def save_json(self, data: Dict[str, Any], path: Path) -> None:
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except (OSError, TypeError) as e:
            logger.error(f"Failed to save {path}: {e}")
            raise

    def load_json(self, path: Path) -> Optional[Dict[str, Any]]:
        """JSON document at ``path``, None if the file does not exist."""
        path = Path(path)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
