"""
History storage settings, the ``[pipeline.storage]`` table.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Literal

SUPPORTED_FORMATS = ("parquet", "csv")
SUPPORTED_COMPRESSION = ("snappy", "gzip", "brotli", "lz4", "zstd")


@dataclass
class StorageConfig:
    """
    How trend tables are written under the history directory.

    Attributes:
        format: 'parquet' (default) or 'csv', which is bigger but readable
            on a history branch without tooling
        compression: Parquet compression; ignored for CSV
        csv_copy: Write a CSV sibling next to each Parquet table
    """

    format: Literal["parquet", "csv"] = "parquet"
    compression: Literal["snappy", "gzip", "brotli", "lz4", "zstd"] = "snappy"
    csv_copy: bool = False

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "StorageConfig":
        """
        Build the settings from the raw TOML table.

        Raises:
            ValueError: On an unknown format or compression
        """
        format_type = config_dict.get("format", "parquet")
        if format_type not in SUPPORTED_FORMATS:
            raise ValueError(f"Unsupported storage format: {format_type}")

        compression = config_dict.get("compression", "snappy")
        if format_type == "parquet" and compression not in SUPPORTED_COMPRESSION:
            raise ValueError(f"Unsupported compression algorithm: {compression}")

        return cls(
            format=format_type,
            compression=compression if compression in SUPPORTED_COMPRESSION else "snappy",
            csv_copy=bool(config_dict.get("csv_copy", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
