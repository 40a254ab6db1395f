"""
Pytest fixtures for backup extraction tests.

Builds a miniature unencrypted iOS backup under tmp_path:

    <root>/Manifest.db                 Files(fileID, domain, relativePath, flags)
    <root>/<xx>/<fileID>               artifact bytes (content = relativePath)
    <root>/31/31bb7ba8...              AddressBook (ABPersonFullTextSearch_content)
    <root>/3d/3d0d7e5f...              sms.db (chat, message, handle, attachment, joins)

Design Notes:
    - Fixtures use tmp_path for isolation between tests
    - File IDs are SHA-1("<domain>-<relativePath>") like real backups
    - Manifest rows are inserted in the order tests rely on for fetch order
"""

import hashlib
import sqlite3
from pathlib import Path
from typing import List, Tuple

import pytest

from backup_extract.config import Config

CONTACTS_FILE_ID = Config.CONTACTS_FILE_ID
SMS_FILE_ID = Config.SMS_FILE_ID
STORE_FILE_IDS = frozenset({CONTACTS_FILE_ID, SMS_FILE_ID})

# 700,000,000 seconds after 2001-01-01, stored as nanoseconds
NANOSECOND_DATE = 700_000_000 * 1_000_000_000


def pytest_configure(config):
    config.addinivalue_line("markers", "property: hypothesis property-based tests")
    config.addinivalue_line("markers", "integration: tests that run whole pipelines")


def make_file_id(domain: str, relative_path: str) -> str:
    """Derive a file ID the way the backup does."""
    return hashlib.sha1(f"{domain}-{relative_path}".encode("utf-8")).hexdigest()


def shard_path(root: Path, file_id: str) -> Path:
    return root / file_id[:2] / file_id


# (domain, relativePath) in Manifest.db insertion order
MANIFEST_FILES: List[Tuple[str, str]] = [
    ("CameraRollDomain", "Media/DCIM/100APPLE/IMG_0001.JPG"),
    ("CameraRollDomain", "Media/DCIM/101APPLE/IMG_0001.jpg"),
    ("CameraRollDomain", "Media/DCIM/100APPLE/IMG_0002.MOV"),
    ("CameraRollDomain", "Media/DCIM/100APPLE/IMG_0003.PNG"),
    ("CameraRollDomain", "Media/PhotoData/Thumbnails/thumb.jpg"),
    ("MediaDomain", "Library/SMS/Attachments/ab/01/photo.jpeg"),
    ("MediaDomain", "Library/SMS/Attachments/cd/02/photo.JPEG"),
    ("MediaDomain", "Library/SMS/Attachments/ef/03/doc.pdf"),
    ("MediaDomain", "Library/SMS/Attachments/ef/03/notes.txt"),
    ("HomeDomain", "Library/SMS/sms.db"),
]


def _create_manifest(root: Path) -> None:
    conn = sqlite3.connect(str(root / "Manifest.db"))
    try:
        conn.executescript(
            """
            CREATE TABLE Files (
                fileID TEXT PRIMARY KEY,
                domain TEXT,
                relativePath TEXT,
                flags INTEGER,
                file BLOB
            );
        """
        )
        conn.executemany(
            "INSERT INTO Files (fileID, domain, relativePath, flags) VALUES (?, ?, ?, 1)",
            [(make_file_id(d, p), d, p) for d, p in MANIFEST_FILES],
        )
        conn.commit()
    finally:
        conn.close()

    for domain, relative_path in MANIFEST_FILES:
        file_id = make_file_id(domain, relative_path)
        # Store shards are real databases, written by their own fixtures
        if file_id in STORE_FILE_IDS:
            continue
        target = shard_path(root, file_id)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(relative_path.encode("utf-8"))


def _create_contacts_db(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    try:
        conn.executescript(
            """
            CREATE TABLE ABPersonFullTextSearch_content (
                docid INTEGER PRIMARY KEY,
                c0First TEXT,
                c1Last TEXT,
                c2Middle TEXT,
                c6Organization TEXT,
                c16Phone TEXT,
                c17Email TEXT,
                c18Address TEXT
            );
        """
        )
        contacts = [
            (
                "Ann",
                "Lee",
                "Marie",
                "Acme",
                "+1 (555) 555-1234 15555551234 5555551234 5551234 1234",
                "ann@example.com",
                "1 Main St",
            ),
            (
                None,
                None,
                None,
                "Apple Inc",
                "(800) 275-2273 18002752273 8002752273 2752273 2273",
                None,
                None,
            ),
            ("Bob", None, None, None, "555-0000", None, None),
            ("Cara", "Diaz", None, None, None, "cara@example.com", None),
        ]
        conn.executemany(
            """INSERT INTO ABPersonFullTextSearch_content
               (c0First, c1Last, c2Middle, c6Organization, c16Phone, c17Email, c18Address)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            contacts,
        )
        conn.commit()
    finally:
        conn.close()


SMS_SCHEMA = """
    CREATE TABLE handle (
        ROWID INTEGER PRIMARY KEY,
        id TEXT NOT NULL
    );

    CREATE TABLE chat (
        ROWID INTEGER PRIMARY KEY,
        chat_identifier TEXT
    );

    CREATE TABLE message (
        ROWID INTEGER PRIMARY KEY,
        text TEXT,
        handle_id INTEGER DEFAULT 0,
        date INTEGER,
        is_from_me INTEGER DEFAULT 0,
        cache_has_attachments INTEGER DEFAULT 0
    );

    CREATE TABLE chat_message_join (
        chat_id INTEGER,
        message_id INTEGER,
        PRIMARY KEY (chat_id, message_id)
    );

    CREATE TABLE attachment (
        ROWID INTEGER PRIMARY KEY,
        filename TEXT
    );

    CREATE TABLE message_attachment_join (
        message_id INTEGER,
        attachment_id INTEGER,
        UNIQUE (message_id, attachment_id)
    );
"""


def _create_sms_db(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    try:
        conn.executescript(SMS_SCHEMA)

        conn.executemany(
            "INSERT INTO handle (ROWID, id) VALUES (?, ?)",
            [(1, "+15555551234"), (2, "+15559990000"), (3, "friend@example.com")],
        )
        conn.executemany(
            "INSERT INTO chat (ROWID, chat_identifier) VALUES (?, ?)",
            [(1, "+15555551234"), (2, "chat-group"), (3, "empty-chat")],
        )

        # (ROWID, text, handle_id, date, is_from_me, cache_has_attachments)
        messages = [
            (1, "Hello", 1, 0, 0, 0),
            (2, "Hi Ann", 1, 86400, 1, 0),
            (3, "Look at this", 2, 3600, 0, 1),
            (4, None, 0, NANOSECOND_DATE, 1, 1),
            (5, "Email msg", 3, 7200, 0, 1),
        ]
        conn.executemany(
            """INSERT INTO message
               (ROWID, text, handle_id, date, is_from_me, cache_has_attachments)
               VALUES (?, ?, ?, ?, ?, ?)""",
            messages,
        )

        # Message 99 was deleted but its join row survived
        conn.executemany(
            "INSERT INTO chat_message_join (chat_id, message_id) VALUES (?, ?)",
            [(1, 2), (1, 1), (2, 3), (2, 4), (2, 5), (2, 99)],
        )

        conn.executemany(
            "INSERT INTO attachment (ROWID, filename) VALUES (?, ?)",
            [
                (10, "~/Library/SMS/Attachments/ab/01/photo.jpeg"),
                (11, "~/Library/SMS/Attachments/ef/03/first.jpg"),
                (12, "~/Library/SMS/Attachments/ef/03/second.jpg"),
            ],
        )
        conn.executemany(
            "INSERT INTO message_attachment_join (message_id, attachment_id) VALUES (?, ?)",
            [(3, 10), (4, 12), (4, 11)],
        )
        conn.commit()
    finally:
        conn.close()


@pytest.fixture
def backup_root(tmp_path: Path) -> Path:
    """
    Create a complete miniature backup.

    Returns:
        Path to the backup root (contains Manifest.db).
    """
    root = tmp_path / "backup"
    root.mkdir()
    _create_manifest(root)
    _create_contacts_db(shard_path(root, CONTACTS_FILE_ID))
    _create_sms_db(shard_path(root, SMS_FILE_ID))
    return root


@pytest.fixture
def manifest_only_backup(tmp_path: Path) -> Path:
    """Backup with Manifest.db and artifacts but no AddressBook or sms.db."""
    root = tmp_path / "manifest_only"
    root.mkdir()
    _create_manifest(root)
    return root


@pytest.fixture
def config(backup_root: Path, tmp_path: Path) -> Config:
    """Config pointing at the sample backup with a separate output folder."""
    return Config(backup_root=str(backup_root), output_dir=str(tmp_path / "out"))


@pytest.fixture
def sms_db_path(backup_root: Path) -> Path:
    return shard_path(backup_root, SMS_FILE_ID)


@pytest.fixture
def contacts_db_path(backup_root: Path) -> Path:
    return shard_path(backup_root, CONTACTS_FILE_ID)


@pytest.fixture
def empty_sms_db(tmp_path: Path) -> Path:
    """sms.db with schema but no rows."""
    path = tmp_path / "empty_sms.db"
    conn = sqlite3.connect(str(path))
    try:
        conn.executescript(SMS_SCHEMA)
        conn.commit()
    finally:
        conn.close()
    return path
