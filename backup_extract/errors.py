"""
Exception taxonomy for backup extraction.

Every failure is reported upward with enough context (store path, domain,
record, conversation ID) for the caller to decide whether to keep going with
the remaining independent work. Nothing here is retried.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

if TYPE_CHECKING:
    from backup_extract.catalog import FileRecord


class ExtractionError(Exception):
    """Base class for all extraction failures."""


class CatalogUnavailable(ExtractionError):
    """A relational store could not be opened, read, or has the wrong shape."""

    def __init__(
        self,
        path: Union[str, Path, None],
        *,
        domain: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        self.path = str(path) if path is not None else None
        self.domain = domain
        self.cause = cause
        message = f"Catalog unavailable: {self.path}"
        if domain:
            message += f" (domain {domain})"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class InvalidFileID(ExtractionError, ValueError):
    """A file identifier is too short to name its shard directory."""

    def __init__(self, file_id: str):
        self.file_id = file_id
        super().__init__(f"Invalid file ID {file_id!r}: need at least 2 characters")


class CopyFailed(ExtractionError):
    """Copying one record's bytes to the destination tree failed."""

    def __init__(self, record: "FileRecord", cause: BaseException):
        self.record = record
        self.cause = cause
        super().__init__(
            f"Copy failed for {record.origin_domain}:{record.relative_path} "
            f"(file ID {record.file_id}): {cause}"
        )


class CorrelationQueryFailed(ExtractionError):
    """A query failed while building conversation transcripts."""

    def __init__(self, conversation_id: Optional[int], cause: BaseException):
        self.conversation_id = conversation_id
        self.cause = cause
        where = (
            f"conversation {conversation_id}"
            if conversation_id is not None
            else "conversation enumeration"
        )
        super().__init__(f"Correlation query failed during {where}: {cause}")
