"""
Typed table export.

Each exported column declares the type it expects up front. Cells go through
a single decode path per declared type and come out as a NullableField, so
absent values are explicit instead of being discovered by inspecting whatever
SQLite happened to return.
"""

import csv
import sqlite3
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Union
import logging

from backup_extract.database import DatabaseConnection
from backup_extract.errors import CatalogUnavailable
from backup_extract.queries import contact_records

logger = logging.getLogger(__name__)


class ColumnKind(str, Enum):
    TEXT = "text"
    INTEGER = "integer"


@dataclass(frozen=True)
class NullableField:
    """A decoded cell; value is None when the source cell was NULL."""

    value: Optional[str]

    @property
    def is_null(self) -> bool:
        return self.value is None

    def render(self) -> str:
        return "" if self.value is None else self.value


@dataclass(frozen=True)
class ColumnSpec:
    """Source column, output heading, and the type the column must hold."""

    source: str
    heading: str
    kind: ColumnKind = ColumnKind.TEXT


def _decode_text(raw: Any) -> str:
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return str(raw)


def _decode_integer(raw: Any) -> str:
    return str(int(raw))


_DECODERS = {
    ColumnKind.TEXT: _decode_text,
    ColumnKind.INTEGER: _decode_integer,
}


def decode_cell(spec: ColumnSpec, raw: Any) -> NullableField:
    """
    Decode one cell according to its column's declared kind.

    Raises:
        ValueError: If an INTEGER column holds a value that is not an integer.
    """
    if raw is None:
        return NullableField(None)
    try:
        return NullableField(_DECODERS[spec.kind](raw))
    except (TypeError, ValueError) as e:
        raise ValueError(f"Column {spec.source} expected {spec.kind.value}, got {raw!r}") from e


def decode_row(columns: Sequence[ColumnSpec], row: Sequence[Any]) -> List[NullableField]:
    """Decode a full row; row must have one cell per column."""
    if len(row) != len(columns):
        raise ValueError(f"Expected {len(columns)} cells, got {len(row)}")
    return [decode_cell(spec, raw) for spec, raw in zip(columns, row)]


def write_table(
    path: Union[str, Path],
    headings: Sequence[str],
    rows: Iterable[Sequence[str]],
) -> int:
    """
    Write a CSV file: one header row, then every data row.

    Returns:
        Number of data rows written.
    """
    count = 0
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(list(headings))
        for row in rows:
            writer.writerow(list(row))
            count += 1
    return count


CONTACT_COLUMNS = (
    ColumnSpec("c0First", "First name"),
    ColumnSpec("c1Last", "Last name"),
    ColumnSpec("c2Middle", "Middle"),
    ColumnSpec("c6Organization", "Organization"),
    ColumnSpec("c16Phone", "Phone number"),
    ColumnSpec("c17Email", "E-mail address"),
    ColumnSpec("c18Address", "Address"),
)


def export_contacts(db: DatabaseConnection, output_path: Union[str, Path]) -> int:
    """
    Export the AddressBook as a flat CSV table.

    Args:
        db: Open connection to the AddressBook.
        output_path: CSV file to create.

    Returns:
        Number of contacts written.

    Raises:
        CatalogUnavailable: If the AddressBook cannot be queried.
    """
    try:
        rows = db.execute_query(contact_records())
    except sqlite3.Error as e:
        logger.error(f"Unable to query contacts: {e}")
        raise CatalogUnavailable(db.path, cause=e) from e

    decoded = (
        [field.render() for field in decode_row(CONTACT_COLUMNS, row)] for row in rows
    )
    count = write_table(output_path, [c.heading for c in CONTACT_COLUMNS], decoded)
    logger.info(f"Exported {count} contacts to {output_path}")
    return count
