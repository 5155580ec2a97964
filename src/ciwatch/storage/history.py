"""
Per-job history: the previous run's records and the metric trend.

Layout under ``history_dir``::

    <job>/records.json        records of the last recorded run
    <job>/trend.<ext>         long-form table: run_id, timestamp, commit, metric, value

The trend is trimmed to the last ``max_runs`` runs. A missing or unreadable
history is treated as empty; it never fails a run.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

import polars as pl

from ..config.storage_config import StorageConfig
from ..models.records import LogRecord
from .factory import create_storage

logger = logging.getLogger(__name__)

TREND_SCHEMA = {
    "run_id": pl.Utf8,
    "timestamp": pl.Utf8,
    "commit": pl.Utf8,
    "metric": pl.Utf8,
    "value": pl.Float64,
}


def empty_trend() -> pl.DataFrame:
    return pl.DataFrame(schema=TREND_SCHEMA)


def _normalize(df: pl.DataFrame) -> pl.DataFrame:
    """Cast a loaded table to the trend schema (CSV reads everything as text)."""
    missing = [name for name in TREND_SCHEMA if name not in df.columns]
    if missing:
        raise ValueError(f"trend table is missing columns: {missing}")
    return df.select(
        [pl.col(name).cast(dtype, strict=False) for name, dtype in TREND_SCHEMA.items()]
    )


class HistoryStore:
    """
    Reads and writes job history through a DataStorage backend.
    """

    def __init__(self, history_dir: Path, storage_config: Optional[StorageConfig] = None, max_runs: int = 50):
        """
        Args:
            history_dir: Root directory of all job histories
            storage_config: Storage format settings
            max_runs: Number of runs kept in each trend table
        """
        self.history_dir = Path(history_dir)
        self.storage_config = storage_config or StorageConfig()
        self.max_runs = max_runs
        self.storage = create_storage(self.storage_config)

    def job_dir(self, job: str) -> Path:
        return self.history_dir / job

    def records_path(self, job: str) -> Path:
        return self.job_dir(job) / "records.json"

    def trend_path(self, job: str) -> Path:
        return self.storage.table_path(self.job_dir(job), "trend")

    # --- Records ---

    def load_previous_records(self, job: str) -> List[LogRecord]:
        """
        Records saved by the last recorded run of ``job``.

        Returns:
            The records, or an empty list if there is no usable history
        """
        path = self.records_path(job)
        try:
            data = self.storage.load_json(path)
            if data is None:
                logger.info(f"No previous records for job '{job}'")
                return []
            return [LogRecord.from_dict(item) for item in data.get("records", [])]
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable history {path}: {e}")
            return []

    def save_records(self, job: str, run_id: str, records: List[LogRecord]) -> Path:
        path = self.records_path(job)
        self.storage.save_json(
            {
                "job": job,
                "run_id": run_id,
                "saved_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
                "records": [r.to_dict() for r in records],
            },
            path,
        )
        logger.info(f"Saved {len(records)} records for job '{job}' to {path}")
        return path

    # --- Trend ---

    def load_trend(self, job: str) -> pl.DataFrame:
        """The job's trend table, empty when there is none."""
        path = self.trend_path(job)
        try:
            table = self.storage.load_table(path)
            return empty_trend() if table is None else _normalize(table)
        except Exception as e:
            logger.warning(f"Ignoring unreadable trend {path}: {e}")
            return empty_trend()

    def append_trend(
        self,
        job: str,
        run_id: str,
        commit: str,
        metrics: Dict[str, float],
        timestamp: Optional[str] = None,
    ) -> pl.DataFrame:
        """
        Add one run's metrics to the trend and trim it to ``max_runs`` runs.

        Re-recording an existing ``run_id`` replaces its rows.

        Returns:
            The updated trend table
        """
        timestamp = timestamp or datetime.now(timezone.utc).isoformat(timespec="seconds")
        new_rows = pl.DataFrame(
            {
                "run_id": [run_id] * len(metrics),
                "timestamp": [timestamp] * len(metrics),
                "commit": [commit] * len(metrics),
                "metric": list(metrics.keys()),
                "value": [float(v) for v in metrics.values()],
            },
            schema=TREND_SCHEMA,
        )

        existing = self.load_trend(job).filter(pl.col("run_id") != run_id)
        combined = pl.concat([existing, new_rows], how="vertical")

        run_ids = combined.get_column("run_id").unique(maintain_order=True).to_list()
        if len(run_ids) > self.max_runs:
            keep = run_ids[-self.max_runs:]
            combined = combined.filter(pl.col("run_id").is_in(keep))
            logger.debug(f"Trimmed trend for '{job}' to {self.max_runs} runs")

        self.storage.save_table(combined, self.trend_path(job))
        return combined

    def latest_metrics(self, job: str) -> Dict[str, float]:
        """Metrics of the most recent recorded run (empty without history)."""
        trend = self.load_trend(job)
        if trend.is_empty():
            return {}
        last_run = trend.get_column("run_id")[-1]
        rows = trend.filter(pl.col("run_id") == last_run)
        return {
            metric: value
            for metric, value in zip(rows.get_column("metric").to_list(), rows.get_column("value").to_list())
            if value is not None
        }

    def metric_series(self, job: str, metric: str, last: Optional[int] = None) -> List[Dict[str, object]]:
        """
        One metric over time, oldest first.

        Returns:
            Dicts with run_id, timestamp, commit and value
        """
        rows = self.load_trend(job).filter(pl.col("metric") == metric)
        if last is not None:
            rows = rows.tail(last)
        return rows.select(["run_id", "timestamp", "commit", "value"]).to_dicts()
