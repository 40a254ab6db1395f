"""
Conversation correlation for sms.db.

Turns the normalized conversation store into one human-readable transcript
per conversation:

    chat ──< chat_message_join >── message ──> handle
                                      │
                                      └──< message_attachment_join >── attachment

Steps per conversation (linear, no backtracking):
    1. Enumerate conversation IDs
    2. Fetch the conversation's message IDs from chat_message_join
    3. Batch-fetch those messages, LEFT JOINed with handle
    4. Per message: convert the timestamp, resolve the attachment (only when
       the message is flagged as having one), resolve the sender's name
    5. Write the rows, in fetch order, to the conversation's transcript

Any query failure aborts the whole pass with CorrelationQueryFailed.
Transcripts written before the failure stay on disk.
"""

import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union
import logging

from backup_extract.contacts import Identity, PhoneIndex
from backup_extract.database import DatabaseConnection
from backup_extract.errors import CorrelationQueryFailed
from backup_extract.export import write_table
from backup_extract.queries import (
    MAX_BOUND_PARAMETERS,
    attachment_for_message,
    conversation_ids,
    conversation_message_ids,
    messages_by_ids,
)

logger = logging.getLogger(__name__)

# Apple's epoch: 2001-01-01 00:00:00, kept as a naive wall-clock reference
APPLE_EPOCH = datetime(2001, 1, 1)

# Newer sms.db versions store nanoseconds; anything this large cannot be seconds
NANOSECOND_THRESHOLD = 10**11

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

TRANSCRIPT_HEADER: Tuple[str, ...] = (
    "Date",
    "Handle ID",
    "First",
    "Last",
    "Message",
    "Attachment file path",
)

SELF_IDENTITY = Identity(first="Me", last="")
UNKNOWN_IDENTITY = Identity(first="", last="")


@dataclass(frozen=True)
class MessageRow:
    """Message as fetched from sms.db."""

    message_id: int
    raw_date: Optional[int]
    is_from_me: bool
    text: Optional[str]
    handle: Optional[str]
    has_attachment: bool


@dataclass(frozen=True)
class TranscriptRow:
    """One denormalized transcript line."""

    date: str
    handle: str
    first: str
    last: str
    text: str
    attachment: str

    def as_tuple(self) -> Tuple[str, ...]:
        return (self.date, self.handle, self.first, self.last, self.text, self.attachment)


@dataclass
class CorrelationResult:
    """Outcome of a correlation pass."""

    conversations_found: int = 0
    transcripts: List[Path] = field(default_factory=list)
    message_counts: Dict[int, int] = field(default_factory=dict)  # conversation_id -> rows

    @property
    def transcripts_written(self) -> int:
        return len(self.transcripts)

    @property
    def messages_written(self) -> int:
        return sum(self.message_counts.values())


def convert_apple_timestamp(raw: Optional[Union[int, float]]) -> str:
    """
    Convert an sms.db date to a calendar string.

    Args:
        raw: Seconds (or, on newer devices, nanoseconds) since 2001-01-01.

    Returns:
        "YYYY-MM-DD HH:MM:SS", or "" if raw is NULL, not a number, or out of range.

    Examples:
        >>> convert_apple_timestamp(0)
        '2001-01-01 00:00:00'
        >>> convert_apple_timestamp(86400)
        '2001-01-02 00:00:00'
    """
    if raw is None:
        return ""

    try:
        seconds = int(raw)
    except (TypeError, ValueError, OverflowError):
        logger.warning(f"Timestamp is not a number: {raw!r}")
        return ""

    if abs(seconds) >= NANOSECOND_THRESHOLD:
        seconds //= 1_000_000_000

    try:
        dt = APPLE_EPOCH + timedelta(seconds=seconds)
    except OverflowError:
        logger.warning(f"Timestamp out of range: {raw}")
        return ""
    return dt.strftime(TIMESTAMP_FORMAT)


def resolve_sender(message: MessageRow, phone_index: PhoneIndex) -> Identity:
    """
    Name the sender of a message.

    Sent messages are always attributed to "Me", whatever the handle says.
    Unknown handles resolve to blank names; that is not an error.
    """
    if message.is_from_me:
        return SELF_IDENTITY
    if message.handle:
        return phone_index.get(message.handle, UNKNOWN_IDENTITY)
    return UNKNOWN_IDENTITY


def fetch_conversation_ids(db: DatabaseConnection) -> List[int]:
    """Fetch every conversation ID, ascending."""
    return [row[0] for row in db.execute_query(conversation_ids())]


def fetch_message_ids(db: DatabaseConnection, conversation_id: int) -> List[int]:
    """Fetch the ordered message IDs of one conversation."""
    query, params = conversation_message_ids(conversation_id)
    return [row[0] for row in db.execute_query(query, params)]


def fetch_messages(db: DatabaseConnection, message_ids: Sequence[int]) -> List[MessageRow]:
    """
    Batch-fetch messages by ID, chunked to respect SQLite's variable limit.

    Message IDs missing from the message table are silently absent from the
    result; the join table can outlive deleted messages.
    """
    messages: List[MessageRow] = []
    ordered_ids = sorted(set(message_ids))

    for start in range(0, len(ordered_ids), MAX_BOUND_PARAMETERS):
        chunk = ordered_ids[start : start + MAX_BOUND_PARAMETERS]
        query, params = messages_by_ids(chunk)
        for rowid, raw_date, is_from_me, text, handle, has_attachment in db.execute_query(
            query, params
        ):
            messages.append(
                MessageRow(
                    message_id=rowid,
                    raw_date=raw_date,
                    is_from_me=bool(is_from_me),
                    text=text,
                    handle=handle,
                    has_attachment=bool(has_attachment),
                )
            )
    return messages


def fetch_attachment_filename(db: DatabaseConnection, message_id: int) -> str:
    """Resolve a message's attachment filename, or "" if none is linked."""
    query, params = attachment_for_message(message_id)
    rows = db.execute_query(query, params)
    if not rows or rows[0][0] is None:
        return ""
    return str(rows[0][0])


def build_transcript_row(
    db: DatabaseConnection, message: MessageRow, phone_index: PhoneIndex
) -> TranscriptRow:
    """Denormalize one message into a transcript row."""
    attachment = (
        fetch_attachment_filename(db, message.message_id) if message.has_attachment else ""
    )
    sender = resolve_sender(message, phone_index)
    return TranscriptRow(
        date=convert_apple_timestamp(message.raw_date),
        handle=message.handle or "",
        first=sender.first,
        last=sender.last,
        text=message.text or "",
        attachment=attachment,
    )


def correlate_conversation(
    db: DatabaseConnection, conversation_id: int, phone_index: PhoneIndex
) -> List[TranscriptRow]:
    """
    Build the transcript rows for one conversation.

    Raises:
        CorrelationQueryFailed: If any query fails.
    """
    try:
        message_ids = fetch_message_ids(db, conversation_id)
        if not message_ids:
            return []
        messages = fetch_messages(db, message_ids)
        return [build_transcript_row(db, message, phone_index) for message in messages]
    except sqlite3.Error as e:
        logger.error(f"Correlation failed for conversation {conversation_id}: {e}")
        raise CorrelationQueryFailed(conversation_id, e) from e


def transcript_path(output_dir: Union[str, Path], conversation_id: int) -> Path:
    """Path of the transcript file for one conversation."""
    return Path(output_dir) / f"conversation_{conversation_id}.csv"


def write_transcript(path: Union[str, Path], rows: Sequence[TranscriptRow]) -> int:
    """Write a transcript; the header row is written even when rows is empty."""
    return write_table(path, TRANSCRIPT_HEADER, (row.as_tuple() for row in rows))


def correlate_all(
    db: DatabaseConnection,
    phone_index: PhoneIndex,
    output_dir: Union[str, Path],
    result: Optional[CorrelationResult] = None,
) -> CorrelationResult:
    """
    Write one transcript per conversation in sms.db.

    Conversations are processed strictly one at a time.

    Args:
        db: Open connection to sms.db.
        phone_index: Read-only phone -> identity lookup.
        output_dir: Existing folder for transcript files.
        result: Optional result to fill in; pass one to keep the partial
            progress when the pass fails.

    Returns:
        CorrelationResult listing every transcript written.

    Raises:
        CorrelationQueryFailed: On the first failing query; earlier
            transcripts are left in place.
    """
    if result is None:
        result = CorrelationResult()

    try:
        ids = fetch_conversation_ids(db)
    except sqlite3.Error as e:
        logger.error(f"Unable to enumerate conversations: {e}")
        raise CorrelationQueryFailed(None, e) from e

    result.conversations_found = len(ids)
    logger.info(f"Correlating {len(ids)} conversations")

    for conversation_id in ids:
        rows = correlate_conversation(db, conversation_id, phone_index)
        path = transcript_path(output_dir, conversation_id)
        write_transcript(path, rows)
        result.transcripts.append(path)
        result.message_counts[conversation_id] = len(rows)
        logger.debug(f"Wrote {len(rows)} messages for conversation {conversation_id}")

    logger.info(
        f"Wrote {result.transcripts_written} transcripts "
        f"({result.messages_written} messages)"
    )
    return result
