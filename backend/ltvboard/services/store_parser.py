"""
LTV record store adapter.

Parses the grouped-by-line JSON snapshot document into RawRecords.
Enrichment happens in ltvboard.services.flattener.
"""

import json
import logging
from pathlib import Path
from typing import Any, Protocol

from ltvboard.models.ltv import RawRecord


logger = logging.getLogger(__name__)


RecordGroups = dict[str, list[RawRecord]]


class SourceLoadError(ValueError):
    """The snapshot document is missing, unreadable or not shaped as expected."""


class RecordSource(Protocol):
    """Anything that can supply grouped raw records."""

    def parse_file(self, filepath: Path) -> RecordGroups:
        ...


class RecordStoreParser:
    """Parser for the `{line: [record, ...]}` snapshot document."""

    def parse_file(self, filepath: Path) -> RecordGroups:
        document = self._read_json(filepath)
        try:
            groups = parse_record_store_data(document)
        except SourceLoadError as e:
            raise SourceLoadError(f"{filepath}: {e}") from e

        count = sum(len(records) for records in groups.values())
        logger.debug(f"Parsed {count} records in {len(groups)} lines from {filepath}")
        return groups

    def _read_json(self, filepath: Path) -> Any:
        try:
            with open(filepath, "r", encoding="utf-8-sig") as f:
                return json.load(f)
        except FileNotFoundError as e:
            raise SourceLoadError(f"Record store not found: {filepath}") from e
        except OSError as e:
            raise SourceLoadError(f"Could not read record store {filepath}: {e}") from e
        except json.JSONDecodeError as e:
            raise SourceLoadError(f"Invalid JSON in record store {filepath}: {e}") from e


def parse_record_store_data(document: Any) -> RecordGroups:
    """
    Build grouped RawRecords from an already-decoded snapshot document.

    Line order and within-line order are preserved.
    """
    if not isinstance(document, dict):
        raise SourceLoadError(
            f"Expected an object keyed by line, got {type(document).__name__}"
        )

    groups: RecordGroups = {}
    for line, records in document.items():
        if not isinstance(records, list):
            raise SourceLoadError(f"Line {line!r}: expected a list of records")
        parsed = []
        for idx, record in enumerate(records):
            if not isinstance(record, dict):
                raise SourceLoadError(f"Line {line!r}, record {idx}: expected an object")
            parsed.append(RawRecord.from_dict(record))
        groups[str(line)] = parsed
    return groups


def parse_record_store(filepath: Path) -> RecordGroups:
    """Convenience function to parse a snapshot document."""
    return RecordStoreParser().parse_file(Path(filepath))
