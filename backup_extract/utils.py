"""
Utility functions and classes for backup extraction.
"""


class Colors:
    """ANSI color codes for terminal output."""

    HEADER = "\033[95m"
    OKBLUE = "\033[94m"
    OKGREEN = "\033[92m"
    WARNING = "\033[93m"
    FAIL = "\033[91m"
    ENDC = "\033[0m"
    BOLD = "\033[1m"


def format_count(count: int, noun: str) -> str:
    """
    Format a count with a correctly pluralized noun.

    Examples:
        >>> format_count(1, "file")
        '1 file'
        >>> format_count(1234, "file")
        '1,234 files'
    """
    suffix = "" if count == 1 else "s"
    return f"{count:,} {noun}{suffix}"
