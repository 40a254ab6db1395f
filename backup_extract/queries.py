"""
SQL query definitions for backup extraction.

Contains every SQL string the engine runs against Manifest.db, sms.db and the
AddressBook. Values are always bound as parameters; only fixed identifiers
appear in the SQL text.
"""

from typing import Any, Sequence, Tuple

# Older SQLite builds cap bound variables at 999 per statement
MAX_BOUND_PARAMETERS = 900


def files_for_filter(
    domain: str, condition: str, extensions: Sequence[str]
) -> Tuple[str, Tuple[Any, ...]]:
    """
    Get query to select file records for one filter.

    Matches domain exactly, relativePath against the LIKE prefix, and
    relativePath against any of the extension suffixes.

    Args:
        domain: iOS domain (e.g. CameraRollDomain).
        condition: LIKE pattern for relativePath (e.g. Media/DCIM%).
        extensions: Extensions without leading dot, both cases already present.

    Returns:
        (SQL query string, parameters tuple).
    """
    if not extensions:
        # An empty allow-list matches nothing
        return "SELECT fileID, domain, relativePath FROM Files WHERE 0;", ()

    suffix_clauses = " OR ".join("relativePath LIKE ?" for _ in extensions)
    query = f"""
        SELECT fileID, domain, relativePath
        FROM Files
        WHERE domain = ?
          AND relativePath LIKE ?
          AND ({suffix_clauses});
    """
    params = (domain, condition) + tuple(f"%.{ext}" for ext in extensions)
    return query, params


def conversation_ids() -> str:
    """Get query to enumerate every conversation."""
    return "SELECT ROWID FROM chat ORDER BY ROWID;"


def conversation_message_ids(conversation_id: int) -> Tuple[str, Tuple[Any, ...]]:
    """
    Get query for the message IDs belonging to one conversation.

    Returns:
        (SQL query string, parameters tuple).
    """
    query = """
        SELECT message_id
        FROM chat_message_join
        WHERE chat_id = ?
        ORDER BY message_id;
    """
    return query, (int(conversation_id),)


def messages_by_ids(message_ids: Sequence[int]) -> Tuple[str, Tuple[Any, ...]]:
    """
    Get query to batch-fetch messages with their sender handle.

    The handle table is LEFT JOINed so messages without a resolvable handle
    (sent messages, system messages) still come back with a NULL handle.
    Callers chunk message_ids to stay under MAX_BOUND_PARAMETERS.

    Returns:
        (SQL query string, parameters tuple).
    """
    placeholders = ", ".join("?" for _ in message_ids)
    query = f"""
        SELECT
            message.ROWID,
            message.date,
            message.is_from_me,
            message.text,
            handle.id,
            message.cache_has_attachments
        FROM message
        LEFT JOIN handle ON message.handle_id = handle.ROWID
        WHERE message.ROWID IN ({placeholders})
        ORDER BY message.ROWID;
    """
    return query, tuple(int(m) for m in message_ids)


def attachment_for_message(message_id: int) -> Tuple[str, Tuple[Any, ...]]:
    """
    Get query resolving a message's attachment filename.

    Two hops in one statement: message_attachment_join -> attachment.
    A message yields at most one attachment; if several are linked, the
    lowest attachment ID wins.

    Returns:
        (SQL query string, parameters tuple).
    """
    query = """
        SELECT attachment.filename
        FROM message_attachment_join
        JOIN attachment ON attachment.ROWID = message_attachment_join.attachment_id
        WHERE message_attachment_join.message_id = ?
        ORDER BY message_attachment_join.attachment_id
        LIMIT 1;
    """
    return query, (int(message_id),)


def contact_records() -> str:
    """Get query for every AddressBook full-text-search row (seven contact columns)."""
    return """
        SELECT c0First, c1Last, c2Middle, c6Organization, c16Phone, c17Email, c18Address
        FROM ABPersonFullTextSearch_content;
    """
