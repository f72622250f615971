"""Text formatting helpers for journal entries."""

from __future__ import annotations


def format_time(seconds: int | float) -> str:
    """Format elapsed seconds as minutes:seconds.

    Seconds are zero-padded to two digits; zero or negative input
    formats as "0:00".

    Examples:
        >>> format_time(65)
        '1:05'
        >>> format_time(-3)
        '0:00'
    """
    total = int(seconds)
    if total <= 0:
        return "0:00"
    mins, secs = divmod(total, 60)
    return f"{mins}:{secs:02d}"


def normalize_tags(raw: str) -> list[str]:
    """Split a comma-separated tag string.

    Each tag is trimmed and empty results are dropped. Input order is
    preserved and duplicates are kept.

    Examples:
        >>> normalize_tags("mood, , daily,mood")
        ['mood', 'daily', 'mood']
    """
    return [tag.strip() for tag in raw.split(",") if tag.strip()]
