"""
Configuration module for iOS backup extraction.

Handles the location of the backup container, the well-known stores inside it,
and the destination tree that extracted artifacts are written to.

Backup Layout:
    - Manifest.db: the file-record catalog (read-only source)
    - <2-char shard>/<fileID>: every other file, stored under its hashed ID
    - AddressBook.sqlitedb and sms.db live in shards like any other file,
      so their physical paths are derived from fixed file IDs.
"""

import os
from pathlib import Path
from typing import Iterable, Optional

from backup_extract.catalog import resolve_physical_path


class Config:
    """Configuration class for a single extraction run."""

    # Catalog database at the root of every unencrypted backup
    MANIFEST_DB_NAME = "Manifest.db"

    # HomeDomain-Library/AddressBook/AddressBook.sqlitedb
    CONTACTS_FILE_ID = "31bb7ba8914766d4ba40d6dfb6113c8b614be442"

    # HomeDomain-Library/SMS/sms.db
    SMS_FILE_ID = "3d0d7e5fb2ce288813306e4d4636395e047a3d28"

    # Default output folder, relative to the backup root
    DEFAULT_OUTPUT_DIR_NAME = "files"

    CONTACTS_EXPORT_NAME = "Contacts.csv"

    def __init__(
        self,
        backup_root: Optional[str] = None,
        output_dir: Optional[str] = None,
    ):
        """
        Initialize configuration.

        Args:
            backup_root: Folder created by the backup (contains Manifest.db).
                    Defaults to the current working directory.
            output_dir: Where extracted files, transcripts and exports go.
                    Defaults to <backup_root>/files.
        """
        self._backup_root: Path = Path(backup_root) if backup_root else Path.cwd()

        self._output_dir: Path
        if output_dir:
            self._output_dir = Path(output_dir)
        else:
            self._output_dir = self._backup_root / self.DEFAULT_OUTPUT_DIR_NAME

    @property
    def backup_root(self) -> Path:
        """Get the backup container root."""
        return self._backup_root

    @property
    def output_dir(self) -> Path:
        """Get the destination root for all outputs."""
        return self._output_dir

    @property
    def manifest_db_path(self) -> Path:
        """Get the Manifest.db path (file-record catalog)."""
        return self._backup_root / self.MANIFEST_DB_NAME

    @property
    def manifest_db_path_str(self) -> str:
        return str(self.manifest_db_path)

    @property
    def contacts_db_path(self) -> Path:
        """Get the sharded AddressBook database path."""
        return resolve_physical_path(self._backup_root, self.CONTACTS_FILE_ID)

    @property
    def contacts_db_path_str(self) -> str:
        return str(self.contacts_db_path)

    @property
    def sms_db_path(self) -> Path:
        """Get the sharded sms.db path (conversation store)."""
        return resolve_physical_path(self._backup_root, self.SMS_FILE_ID)

    @property
    def sms_db_path_str(self) -> str:
        return str(self.sms_db_path)

    @property
    def contacts_export_path(self) -> Path:
        """Get the path of the flat contact export table."""
        return self._output_dir / self.CONTACTS_EXPORT_NAME

    @staticmethod
    def _readable(path: Path) -> bool:
        return path.is_file() and os.access(path, os.R_OK)

    def validate(self) -> bool:
        """
        Validate that Manifest.db exists and is readable.

        Returns:
            True if the catalog can be opened, False otherwise.
        """
        return self._readable(self.manifest_db_path)

    def validate_contacts(self) -> bool:
        """Validate that the AddressBook store exists and is readable."""
        return self._readable(self.contacts_db_path)

    def validate_sms(self) -> bool:
        """Validate that the sms.db store exists and is readable."""
        return self._readable(self.sms_db_path)

    def destination_for(self, destination_folder: str) -> Path:
        """Map a filter's destination folder onto the output tree."""
        return self._output_dir / destination_folder

    def ensure_output_dirs(self, destination_folders: Iterable[str] = ()) -> None:
        """
        Ensure the output root and every destination folder exist.

        Existing directories are left as they are.
        """
        self._output_dir.mkdir(parents=True, exist_ok=True)
        for folder in destination_folders:
            self.destination_for(folder).mkdir(parents=True, exist_ok=True)


# Global configuration instance
_config: Optional[Config] = None


def get_config(backup_root: Optional[str] = None, output_dir: Optional[str] = None) -> Config:
    """
    Get or create the global configuration instance.

    Passing either argument rebuilds the instance.
    """
    global _config
    if _config is None or backup_root is not None or output_dir is not None:
        _config = Config(backup_root, output_dir)
    return _config


def set_config(config: Config) -> None:
    """
    Set the global configuration instance.

    Args:
        config: Config instance to use.
    """
    global _config
    _config = config
