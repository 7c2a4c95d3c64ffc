"""Conversion between epoch milliseconds and ISO 8601 text.

The markdown mirror stores timestamps as ``YYYY-MM-DDTHH:MM:SSZ`` (second
precision, UTC) while the JSON record stores epoch milliseconds. Parsing is
lenient because mirror files are hand-edited and older clients wrote
offsets, fractional seconds and space separators.
"""
import datetime
import logging
import re
from datetime import timezone
from typing import Optional

from davnotes.exceptions import InvalidTimestampError

logger = logging.getLogger(__name__)

EPOCH = datetime.datetime(1970, 1, 1, tzinfo=timezone.utc)
EPOCH_ISO = "1970-01-01T00:00:00Z"

_OFFSET_FORMATS = (
    "%Y-%m-%dT%H:%M:%S%z",  # 2026-02-04T10:25:29+01:00 / +0100
    "%Y-%m-%dT%H:%M:%S.%f%z",  # 2026-02-04T10:25:29.123+01:00 / +0100
)
_NAIVE_FORMATS = (
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
)

# strptime's %f takes at most 6 digits; longer fractions are truncated
_LONG_FRACTION = re.compile(r"(\.\d{6})\d+")


def to_iso(epoch_millis: int) -> str:
    """Format epoch milliseconds as ``YYYY-MM-DDTHH:MM:SSZ``.

    Sub-second precision is truncated (floored), never rounded. Values
    outside the representable date range render as the Unix epoch, so
    this never raises.
    """
    try:
        dt = EPOCH + datetime.timedelta(seconds=int(epoch_millis) // 1000)
    except (OverflowError, ValueError, TypeError):
        logger.debug(f"Timestamp {epoch_millis!r} out of range, using epoch")
        return EPOCH_ISO
    return (
        f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"
        f"T{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}Z"
    )


def _to_millis(dt: datetime.datetime) -> int:
    """Convert an aware datetime to epoch millis, truncating microseconds."""
    delta = dt - EPOCH
    return (
        delta.days * 86_400_000
        + delta.seconds * 1000
        + delta.microseconds // 1000
    )


def _try_formats(text: str, formats, assume_utc: bool) -> Optional[int]:
    for fmt in formats:
        try:
            dt = datetime.datetime.strptime(text, fmt)
        except ValueError:
            continue
        if assume_utc:
            dt = dt.replace(tzinfo=timezone.utc)
        return _to_millis(dt)
    return None


def from_iso(text: str) -> int:
    """Parse an ISO 8601 timestamp into epoch milliseconds.

    Accepted forms, tried in order:

    - offset-aware, ``+01:00`` or ``+0100``, with or without fractional seconds
    - the same with a literal ``Z`` suffix (rewritten to ``+00:00``)
    - offset-naive, interpreted as UTC

    A space between date and time is accepted in place of ``T``.

    Raises:
        InvalidTimestampError: If no form matches.
    """
    normalized = _LONG_FRACTION.sub(r"\1", text.strip().replace(" ", "T"))

    millis = _try_formats(normalized, _OFFSET_FORMATS, assume_utc=False)
    if millis is not None:
        return millis

    millis = _try_formats(
        normalized.replace("Z", "+00:00"), _OFFSET_FORMATS, assume_utc=False
    )
    if millis is not None:
        return millis

    millis = _try_formats(normalized.rstrip("Z"), _NAIVE_FORMATS, assume_utc=True)
    if millis is not None:
        return millis

    raise InvalidTimestampError(text)


def resolve_updated_at(declared: int, server_mtime: Optional[int]) -> int:
    """Pick the effective modification time of a mirror document.

    The server's modification time wins only when it is strictly newer than
    what the document declares, so a lagging server clock can never move a
    note's ``updated_at`` backwards.
    """
    if server_mtime is not None and server_mtime > declared:
        return server_mtime
    return declared
