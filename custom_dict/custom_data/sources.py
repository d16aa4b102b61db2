"""
Base classes for custom data sources.

A source reads its raw records in one pass (load), then feeds them one at a
time, in file order, through the commit engine (insert).
"""

import abc
import csv
import logging
import os
from typing import Any, Iterator, List, Optional

from tqdm import tqdm

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "data")


class CustomDataError(Exception):
    """Base exception for custom source errors"""
    pass

class MalformedRecordError(CustomDataError):
    """A raw record does not have the expected structure"""
    pass

class UnknownSourceError(CustomDataError):
    """A requested source key is not in the registry"""
    pass


def get_data_dir(data_dir: Optional[str] = None) -> str:
    return data_dir or os.getenv("CUSTOM_DATA_DIR") or DEFAULT_DATA_DIR


class CustomSource(abc.ABC):
    """A named file of custom records."""

    description = "Custom entries"
    default_file: Optional[str] = None

    def __init__(self, source_file: Optional[str] = None, description: Optional[str] = None,
                 data_dir: Optional[str] = None):
        self.description = description or self.description
        file_name = source_file or self.default_file
        if not file_name:
            raise CustomDataError(f"No file configured for source '{self.description}'")
        self.source_file = file_name if os.path.isabs(file_name) else os.path.join(get_data_dir(data_dir), file_name)
        self.entries: List[Any] = []

    def __repr__(self):
        return f"<{type(self).__name__} {self.description!r} {self.source_file}>"

    def exists(self) -> bool:
        return os.path.isfile(self.source_file)

    def load(self) -> List[Any]:
        """Read every raw record of the source file, in order."""
        if not self.exists():
            raise CustomDataError(f"Source file not found: {self.source_file}")
        logger.info(f"Loading {self.description} from {self.source_file}")
        self.entries = list(self.read_records())
        logger.info(f"Found {len(self.entries)} records in {self.source_file}")
        return self.entries

    def insert(self, engine) -> None:
        """Pass every loaded record through the commit engine."""
        records = tqdm(
            self.entries,
            desc=f"Inserting {self.description}",
            unit="record",
            leave=False,
            disable=engine.config.silent,
        )
        for record in records:
            self.insert_record(engine, record)

    @abc.abstractmethod
    def read_records(self) -> Iterator[Any]:
        """Yield raw records from the source file."""

    @abc.abstractmethod
    def insert_record(self, engine, record) -> None:
        """Transform, classify and commit one raw record."""


class CsvSource(CustomSource):
    """Header-less CSV with a fixed number of columns."""

    columns: Optional[int] = None

    def read_records(self) -> Iterator[List[str]]:
        with open(self.source_file, "r", encoding="utf-8", newline="") as f:
            for line_no, row in enumerate(csv.reader(f), start=1):
                if not row:
                    continue
                if self.columns is not None and len(row) != self.columns:
                    raise MalformedRecordError(
                        f"{self.source_file}:{line_no}: expected {self.columns} columns, got {len(row)}"
                    )
                yield row
