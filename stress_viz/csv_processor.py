"""
Stress-Test Telemetry CSV Reader
Reads benchmark telemetry rows into Samples with strict, whole-file error handling.

The column layout is an implicit contract with the data producer. Any row with the
wrong column count or an unparseable field aborts the read: silently dropping rows
would misrepresent benchmark results.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Union

import numpy as np
import pandas as pd

from .parameters import ParameterSet, parse_bool, parse_uint
from .registry import Sample

logger = logging.getLogger(__name__)


class TelemetryError(Exception):
    """Base exception for telemetry ingestion errors."""

    pass


class FileAccessError(TelemetryError):
    """Raised when file cannot be accessed or read."""

    pass


class MalformedRowError(TelemetryError):
    """
    Raised when a data row does not match the telemetry column schema.

    row counts data rows from 1, after the header, skipping blank lines.
    """

    def __init__(self, path: Union[str, Path], row: Optional[int], reason: str) -> None:
        self.path = Path(path)
        self.row = row
        self.reason = reason
        where = (
            f"data row {row} (blank lines excluded)" if row is not None else "malformed data"
        )
        super().__init__(f"{self.path}: {where}: {reason}")


@dataclass(frozen=True)
class Column:
    name: str
    kind: str  # "text", "bool", "uint" or "float"
    parameter: Optional[str] = None


# Column order of the telemetry CSV, header excluded.
TELEMETRY_COLUMNS: tuple[Column, ...] = (
    Column("name", "text"),
    Column("archive", "bool", "archive"),
    Column("compress", "bool", "compress"),
    Column("ordered", "bool", "ordered"),
    Column("uniform", "bool", "uniform"),
    Column("num_readers", "uint", "readers"),
    Column("num_writers", "uint", "writers"),
    Column("writer_commits_per_sleep", "uint", "writer_commits_per_sleep"),
    Column("writer_sleep_time", "uint", "writer_sleep_time"),
    Column("commits_per_timing_sample", "uint", "commits_per_timing_sample"),
    Column("progressive", "bool", "progressive"),
    Column("total_commits", "uint"),
    Column("total_commit_time", "float"),
    Column("commits", "uint"),
    Column("commit_time", "float"),
    Column("queries", "uint"),
    Column("query_time", "float"),
)

COLUMN_NAMES: list[str] = [c.name for c in TELEMETRY_COLUMNS]


def _parse_float(text: str) -> Optional[float]:
    try:
        return float(text)
    except ValueError:
        return None


_FIELD_PARSERS: dict[str, Callable[[str], object]] = {
    "bool": parse_bool,
    "uint": parse_uint,
    "float": _parse_float,
}


def rate(count: int, seconds: float) -> float:
    """count / seconds with IEEE semantics (x/0 -> inf, 0/0 -> nan)."""
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.divide(np.float64(count), np.float64(seconds)))


def parse_row(fields: List[str], path: Union[str, Path], row: int) -> Sample:
    """
    Convert one row of raw text fields into a Sample.

    Raises:
        MalformedRowError: wrong column count or any unparseable field
    """
    if len(fields) != len(TELEMETRY_COLUMNS):
        raise MalformedRowError(
            path,
            row,
            f"expected {len(TELEMETRY_COLUMNS)} columns, got {len(fields)}",
        )

    values: dict[str, object] = {}
    for column, raw in zip(TELEMETRY_COLUMNS, fields):
        if column.kind == "text":
            values[column.name] = raw
            continue
        parsed = _FIELD_PARSERS[column.kind](raw.strip())
        if parsed is None:
            raise MalformedRowError(
                path, row, f"column '{column.name}' is not a valid {column.kind}: {raw!r}"
            )
        values[column.name] = parsed

    parameters = ParameterSet(
        {c.parameter: values[c.name] for c in TELEMETRY_COLUMNS if c.parameter}
    )
    return Sample(
        base_name=values["name"],
        parameters=parameters,
        x_key=values["total_commits"],
        measurements=(
            float(values["total_commit_time"]),
            rate(values["commits"], values["commit_time"]),
            rate(values["queries"], values["query_time"]),
        ),
    )


class TelemetryCSVReader:
    """
    Reads a stress-test telemetry CSV into Samples.

    The header row is skipped unconditionally. Every remaining non-blank row must match
    TELEMETRY_COLUMNS exactly.
    """

    def __init__(self, file_path: Union[str, Path]) -> None:
        """
        Initialize the reader with a file path.

        Args:
            file_path: Path to the CSV file to read

        Raises:
            FileNotFoundError: If the specified file does not exist
            FileAccessError: If the path is not a regular file
        """
        self.file_path = Path(file_path)
        if not self.file_path.exists():
            raise FileNotFoundError(f"CSV file not found: {self.file_path}")
        if not self.file_path.is_file():
            raise FileAccessError(f"Path is not a file: {self.file_path}")
        if not self.file_path.suffix.lower() == ".csv":
            logger.warning(f"File does not have .csv extension: {self.file_path}")

    def read_fields(self) -> List[List[str]]:
        """
        Read the raw text fields of every data row.

        Returns:
            List[List[str]]: One list of fields per data row (header excluded)

        Raises:
            MalformedRowError: If a row has more or fewer fields than the first row
            FileAccessError: If the file cannot be read
        """
        try:
            df = pd.read_csv(
                self.file_path,
                header=None,
                skiprows=1,
                dtype=str,
                keep_default_na=False,
            )
        except pd.errors.EmptyDataError:
            return []
        except pd.errors.ParserError as e:
            raise MalformedRowError(self.file_path, None, f"column count mismatch ({e})")
        except OSError as e:
            raise FileAccessError(f"Error reading CSV file {self.file_path}: {e}")

        rows: List[List[str]] = []
        for record in df.itertuples(index=False, name=None):
            # Short rows are padded with NaN by pandas
            fields = [f for f in record if not (isinstance(f, float) and np.isnan(f))]
            rows.append(fields)
        return rows

    def read_samples(self) -> List[Sample]:
        """
        Parse every data row into a Sample.

        Raises:
            MalformedRowError: On the first row that does not match the schema
        """
        samples = [
            parse_row(fields, self.file_path, row)
            for row, fields in enumerate(self.read_fields(), start=1)
        ]
        logger.debug("Read %d samples from %s", len(samples), self.file_path)
        return samples

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        pass

