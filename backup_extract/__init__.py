"""
Backup Extract - pull photos, attachments, contacts and message transcripts
out of an unencrypted iOS backup.

This package provides functionality to:
- Resolve Manifest.db file records to their hashed on-disk locations
- Copy selected artifacts into a readable folder tree without name clashes
- Export contacts and write one CSV transcript per conversation
"""

__version__ = "0.1.0"

from backup_extract.config import get_config, Config
from backup_extract.database import DatabaseConnection
from backup_extract.errors import (
    ExtractionError,
    CatalogUnavailable,
    InvalidFileID,
    CopyFailed,
    CorrelationQueryFailed,
)
from backup_extract.filters import FilterSpec, DEFAULT_FILTERS
from backup_extract.pipeline import run_artifact_pipeline, run_correlation_pipeline

__all__ = [
    "get_config",
    "Config",
    "DatabaseConnection",
    # Errors
    "ExtractionError",
    "CatalogUnavailable",
    "InvalidFileID",
    "CopyFailed",
    "CorrelationQueryFailed",
    # Filters
    "FilterSpec",
    "DEFAULT_FILTERS",
    # Pipelines
    "run_artifact_pipeline",
    "run_correlation_pipeline",
]
