"""
Identity directory built from the iOS AddressBook.

The backup's AddressBook.sqlitedb keeps a full-text-search mirror of every
contact (ABPersonFullTextSearch_content). Its phone column (c16Phone) packs
several renderings of each number into one space-separated string, e.g.

    "+1 (555) 555-1234 15555551234 5555551234 5551234 1234"

Messages identify senders by handle ("+15555551234"), so the directory maps
"+" plus one chosen token to the contact's first and last name.

Phone Token Protocol (version 1):
    - split c16Phone on a single space
    - require at least PHONE_MIN_TOKENS tokens
    - take the token PHONE_TOKEN_OFFSET_FROM_END positions from the end
    - prefix "+"
This is a property of the AddressBook's concatenation format, not a general
phone parser. If Apple changes the format, bump the version and the constants
together rather than guessing.
"""

import sqlite3
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional
import logging

from backup_extract.database import DatabaseConnection
from backup_extract.errors import CatalogUnavailable
from backup_extract.queries import contact_records

logger = logging.getLogger(__name__)

PHONE_TOKEN_FORMAT_VERSION = 1
PHONE_TOKEN_SEPARATOR = " "
PHONE_TOKEN_OFFSET_FROM_END = 4
PHONE_MIN_TOKENS = 5

CONTACTS_TABLE = "ABPersonFullTextSearch_content"


@dataclass(frozen=True)
class ContactRecord:
    """One row of the AddressBook full-text-search table."""

    first: Optional[str]
    last: Optional[str]
    middle: Optional[str]
    organization: Optional[str]
    phone_raw: Optional[str]
    email: Optional[str]
    address: Optional[str]


class Identity(NamedTuple):
    """Display name of a message sender."""

    first: str
    last: str


# Immutable after construction; safe to share across correlation runs
PhoneIndex = Mapping[str, Identity]


def normalize_contact_phone(phone_raw: Optional[str]) -> Optional[str]:
    """
    Pick the handle-formatted phone number out of a c16Phone value.

    Args:
        phone_raw: Raw concatenated phone column.

    Returns:
        "+<token>" for the token at the protocol offset, or None when the
        value has too few tokens.

    Examples:
        >>> normalize_contact_phone("+1 (555) 555-1234 15555551234 5555551234 5551234 1234")
        '+15555551234'
        >>> normalize_contact_phone("555-1234") is None
        True
    """
    if not phone_raw:
        return None

    tokens = str(phone_raw).split(PHONE_TOKEN_SEPARATOR)
    if len(tokens) < PHONE_MIN_TOKENS:
        return None

    token = tokens[-PHONE_TOKEN_OFFSET_FROM_END]
    if not token:
        return None

    # A token that already carries the plus sign is not prefixed twice
    return token if token.startswith("+") else f"+{token}"


def build_phone_index(records: Iterable[ContactRecord]) -> PhoneIndex:
    """
    Build the phone -> identity lookup.

    Records without a first name or without a usable phone value are skipped;
    that is expected, not an error. When two contacts share a number the
    later record wins.

    Args:
        records: Contact records in table order.

    Returns:
        Read-only mapping from "+<digits>" handle keys to Identity.
    """
    index: Dict[str, Identity] = {}
    skipped = 0

    for record in records:
        if not record.first:
            skipped += 1
            continue

        key = normalize_contact_phone(record.phone_raw)
        if key is None:
            skipped += 1
            continue

        index[key] = Identity(first=record.first, last=record.last or "")

    logger.info(f"Built phone index with {len(index)} entries ({skipped} contacts skipped)")
    return MappingProxyType(index)


def extract_contact_records(db: DatabaseConnection) -> List[ContactRecord]:
    """
    Extract every contact row from the AddressBook.

    Raises:
        CatalogUnavailable: If the AddressBook cannot be queried.
    """
    try:
        rows = db.execute_query(contact_records())
    except sqlite3.Error as e:
        logger.error(f"Failed to read {CONTACTS_TABLE}: {e}")
        raise CatalogUnavailable(db.path, cause=e) from e

    records = [ContactRecord(*row) for row in rows]
    logger.info(f"Extracted {len(records)} contacts from AddressBook")
    return records


def load_phone_index(db: DatabaseConnection) -> PhoneIndex:
    """Extract contacts and build the phone index in one step."""
    return build_phone_index(extract_contact_records(db))
