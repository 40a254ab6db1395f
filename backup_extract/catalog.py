"""
Catalog queries and obfuscated path resolution.

Manifest.db records every backed-up file as (fileID, domain, relativePath).
The file's bytes live at <backup root>/<fileID[0:2]>/<fileID>; the
relativePath is the only place the original name survives.

Design Decisions:
    1. SQLite does the filtering (domain, prefix, extension suffixes)
    2. Extension sets are expanded to both cases before querying
    3. Path resolution is a pure function with no filesystem access
"""

import sqlite3
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import List, Union
import logging

from backup_extract.database import DatabaseConnection
from backup_extract.errors import CatalogUnavailable, InvalidFileID
from backup_extract.filters import FilterSpec
from backup_extract.queries import files_for_filter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileRecord:
    """File record from Manifest.db."""

    file_id: str  # SHA-1 hex of "<domain>-<relativePath>"
    origin_domain: str
    relative_path: str

    @property
    def filename(self) -> str:
        """Original file name: the final segment of relative_path."""
        return self.relative_path.rsplit("/", 1)[-1]


def resolve_file_id(file_id: str) -> PurePosixPath:
    """
    Map a file ID to its location relative to the backup root.

    Args:
        file_id: Hex file identifier from Manifest.db.

    Returns:
        PurePosixPath of the form <first two chars>/<file_id>.

    Raises:
        InvalidFileID: If file_id is shorter than two characters.

    Examples:
        >>> resolve_file_id("3d0d7e5fb2ce288813306e4d4636395e047a3d28")
        PurePosixPath('3d/3d0d7e5fb2ce288813306e4d4636395e047a3d28')
    """
    if not isinstance(file_id, str) or len(file_id) < 2:
        raise InvalidFileID(str(file_id))
    return PurePosixPath(file_id[:2]) / file_id


def resolve_physical_path(backup_root: Union[str, Path], file_id: str) -> Path:
    """Resolve a file ID to its sharded path under backup_root."""
    return Path(backup_root).joinpath(*resolve_file_id(file_id).parts)


def query_catalog(db: DatabaseConnection, spec: FilterSpec) -> List[FileRecord]:
    """
    Fetch the file records selected by one filter.

    Args:
        db: Open connection to Manifest.db.
        spec: Filter to apply. Case variants are added here if missing.

    Returns:
        FileRecord list in fetch order.

    Raises:
        CatalogUnavailable: If the catalog cannot be queried.
    """
    spec = spec.with_case_variants()
    extensions = spec.sorted_extensions()
    if not extensions:
        logger.warning(f"No extensions configured for {spec.origin_domain}; nothing to match")
        return []

    query, params = files_for_filter(spec.origin_domain, spec.path_condition, extensions)
    try:
        rows = db.execute_query(query, params)
    except sqlite3.Error as e:
        logger.error(f"Catalog query failed for {spec.origin_domain}: {e}")
        raise CatalogUnavailable(db.path, domain=spec.origin_domain, cause=e) from e

    records = [
        FileRecord(file_id=file_id, origin_domain=domain, relative_path=relative_path)
        for file_id, domain, relative_path in rows
    ]
    logger.info(f"Found {len(records)} catalog records for {spec.origin_domain}")
    return records
