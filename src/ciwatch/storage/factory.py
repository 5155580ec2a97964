"""
Selection of the history storage backend.
"""

import logging
from typing import Dict, Type

from ..config.storage_config import StorageConfig
from .base import DataStorage
from .csv_storage import CsvStorage
from .parquet_storage import ParquetStorage

logger = logging.getLogger(__name__)

BACKENDS: Dict[str, Type[DataStorage]] = {
    "parquet": ParquetStorage,
    "csv": CsvStorage,
}


def create_storage(config: StorageConfig) -> DataStorage:
    """
    Create the backend described by ``config``.

    Raises:
        ValueError: If the format has no backend
    """
    if config.format not in BACKENDS:
        raise ValueError(f"Unsupported storage format: {config.format}")
    logger.debug(f"Using {config.format} history storage")
    if config.format == "parquet":
        return ParquetStorage(compression=config.compression, csv_copy=config.csv_copy)
    return BACKENDS[config.format]()
