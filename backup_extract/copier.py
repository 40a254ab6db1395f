"""
Collision-safe copying of catalog records into the destination tree.

Backups flatten many source folders (DCIM/100APPLE, DCIM/101APPLE, ...) into
one destination folder, so the same original file name shows up repeatedly.
The first copy keeps its name; later ones get a numeric suffix before the
extension: IMG_0001.JPG, IMG_0001-1.jpg, IMG_0001-2.JPG, ...

Design Decisions:
    1. Names are compared case-insensitively (the output may land on a
       case-insensitive filesystem)
    2. One collision table per destination folder, never shared
    3. Fail fast: the first failed copy stops the domain, nothing is retried
    4. Every copy is fsynced before it counts as done
"""

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple, Union
import logging

from backup_extract.catalog import FileRecord, query_catalog, resolve_physical_path
from backup_extract.database import DatabaseConnection
from backup_extract.errors import CopyFailed, ExtractionError
from backup_extract.filters import FilterSpec

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 100


@dataclass(frozen=True)
class CopyResult:
    """One copied file."""

    source_path: Path
    destination_path: Path
    renamed: bool


@dataclass
class DomainResult:
    """Outcome of extracting one filter's files."""

    domain: str
    destination: Path
    records_found: int = 0
    copies: List[CopyResult] = field(default_factory=list)
    error: Optional[ExtractionError] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def copied_count(self) -> int:
        return len(self.copies)

    @property
    def renamed_count(self) -> int:
        return sum(1 for c in self.copies if c.renamed)


def disambiguate(filename: str, n: int) -> str:
    """
    Insert a numeric suffix before the file extension.

    Examples:
        >>> disambiguate("IMG_0001.jpg", 1)
        'IMG_0001-1.jpg'
        >>> disambiguate("archive.tar.gz", 2)
        'archive.tar-2.gz'
        >>> disambiguate("README", 1)
        'README-1'
    """
    stem, dot, ext = filename.rpartition(".")
    if not dot or not stem:
        return f"{filename}-{n}"
    return f"{stem}-{n}.{ext}"


class CollisionTable:
    """
    Tracks file names already written to one destination folder.

    The Nth repeat of a base name gets suffix -N. If that generated name was
    itself already used (an original file literally named IMG_0001-1.jpg), the
    counter keeps advancing so no two records ever share a destination.
    """

    def __init__(self) -> None:
        self._used: Set[str] = set()
        self._counters: Dict[str, int] = {}

    def __contains__(self, filename: str) -> bool:
        return filename.upper() in self._used

    def __len__(self) -> int:
        return len(self._used)

    def claim(self, filename: str) -> Tuple[str, bool]:
        """
        Reserve a destination name for filename.

        Returns:
            (name to write, whether it differs from filename).
        """
        key = filename.upper()
        if key not in self._used and key not in self._counters:
            self._used.add(key)
            self._counters[key] = 1
            return filename, False

        n = self._counters.get(key, 1)
        candidate = disambiguate(filename, n)
        while candidate.upper() in self._used:
            n += 1
            candidate = disambiguate(filename, n)

        self._counters[key] = n + 1
        self._used.add(candidate.upper())
        return candidate, True


def copy_file(src: Union[str, Path], dest: Union[str, Path]) -> None:
    """
    Copy bytes from src to dest and flush them to durable storage.

    Overwrites dest if it exists.

    Raises:
        OSError: If src cannot be read or dest cannot be written.
    """
    with open(src, "rb") as src_file, open(dest, "wb") as dest_file:
        shutil.copyfileobj(src_file, dest_file)
        dest_file.flush()
        os.fsync(dest_file.fileno())


class CollisionSafeCopier:
    """Copies catalog records out of a backup into named destination folders."""

    def __init__(self, backup_root: Union[str, Path]):
        self.backup_root = Path(backup_root)

    def iter_copies(
        self, records: Iterable[FileRecord], destination: Union[str, Path]
    ) -> Iterator[CopyResult]:
        """
        Copy records into destination, yielding each result as it completes.

        A fresh collision table is used for every call.

        Raises:
            InvalidFileID: If a record's file ID cannot be resolved.
            CopyFailed: On the first I/O failure; later records are not copied.
        """
        destination = Path(destination)
        table = CollisionTable()
        counter = 0

        for record in records:
            source = resolve_physical_path(self.backup_root, record.file_id)
            name, renamed = table.claim(record.filename)
            target = destination / name

            if renamed:
                logger.info(
                    f"Duplicate filename encountered. Renaming {record.filename} to {name}."
                )

            try:
                copy_file(source, target)
            except OSError as e:
                logger.error(f"Copy failed: {source} -> {target}: {e}")
                raise CopyFailed(record, e) from e

            counter += 1
            if counter % PROGRESS_EVERY == 0:
                logger.info(f"Copied {counter} files...")

            yield CopyResult(source_path=source, destination_path=target, renamed=renamed)

    def copy_records(
        self, records: Iterable[FileRecord], destination: Union[str, Path]
    ) -> List[CopyResult]:
        """Copy records into destination and return every result."""
        return list(self.iter_copies(records, destination))


def extract_domain(
    db: DatabaseConnection,
    spec: FilterSpec,
    backup_root: Union[str, Path],
    destination: Union[str, Path],
) -> DomainResult:
    """
    Query, resolve and copy every file selected by one filter.

    Failures do not raise: the first error is stored on the result, copying
    stops, and files already copied stay where they are.

    Args:
        db: Open connection to Manifest.db.
        spec: Filter describing what to copy.
        backup_root: Backup container root (holds the shard directories).
        destination: Existing folder to copy into.

    Returns:
        DomainResult with every completed copy and the error, if any.
    """
    result = DomainResult(domain=spec.origin_domain, destination=Path(destination))
    logger.info(f"Beginning copy of {spec.origin_domain} files.")

    try:
        records = query_catalog(db, spec)
        result.records_found = len(records)

        copier = CollisionSafeCopier(backup_root)
        for copy in copier.iter_copies(records, destination):
            result.copies.append(copy)
    except ExtractionError as e:
        result.error = e
        logger.error(
            f"Extraction of {spec.origin_domain} stopped after "
            f"{result.copied_count} files: {e}"
        )
        return result

    logger.info(
        f"Copy of {spec.origin_domain} files finished. Copied {result.copied_count} files "
        f"({result.renamed_count} renamed)."
    )
    return result
