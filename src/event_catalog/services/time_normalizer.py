"""
Time normalization between station wall-clock time and canonical UTC.

The station runs on a single fixed UTC offset with no daylight saving, so
converting a wall-clock value is a constant shift. Stored instants use the
canonical form ``YYYY-MM-DDTHH:MM:SS.sssZ`` which sorts lexically in
chronological order.
"""
import math
import re
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional, Union

from ..exceptions import ValidationError
from ..models import Event, Track

LOCAL_INPUT_FORMATS = ("%Y-%m-%dT%H:%M", "%Y-%m-%dT%H:%M:%S")
LOCAL_OUTPUT_FORMAT = "%Y-%m-%dT%H:%M"

_OFFSET_RE = re.compile(r"^(?P<sign>[+-])(?P<hours>\d{2}):?(?P<minutes>\d{2})$")


def parse_utc_offset(text: str) -> timezone:
    """Parse ``+HH:MM`` / ``-HHMM`` / ``Z`` into a fixed-offset timezone."""
    value = (text or "").strip()
    if value.upper() in ("Z", "UTC"):
        return timezone.utc

    match = _OFFSET_RE.match(value)
    if not match:
        raise ValueError(f"Invalid UTC offset: {text!r}")

    hours = int(match.group("hours"))
    minutes = int(match.group("minutes"))
    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid UTC offset: {text!r}")

    delta = timedelta(hours=hours, minutes=minutes)
    if match.group("sign") == "-":
        delta = -delta
    return timezone(delta)


def to_canonical_utc(instant: datetime) -> str:
    """Render an aware datetime as ``YYYY-MM-DDTHH:MM:SS.sssZ``."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    utc = instant.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def parse_instant(value: str) -> datetime:
    """Parse an ISO-8601 string into an aware UTC datetime.

    A trailing ``Z`` is accepted; a value without an offset is read as UTC.
    Raises ValueError when the string is not ISO-8601.
    """
    text = value.strip()
    if text[-1:] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def ensure_iso_instant(value: object, label: str) -> str:
    """Validate an ISO-8601 instant and return its canonical UTC form."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} is required.", field=label)

    try:
        return to_canonical_utc(parse_instant(value))
    except (ValueError, OverflowError):
        raise ValidationError(f"{label} must be a valid ISO-8601 date.", field=label)


def local_to_utc(value: object, label: str, offset: timezone) -> str:
    """Convert a station wall-clock value (``YYYY-MM-DDTHH:MM``) to canonical UTC.

    Args:
        value: Wall-clock string without an explicit zone
        label: Field name reported in validation errors
        offset: The station's fixed UTC offset

    Returns:
        Canonical UTC instant string
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} is required.", field=label)

    text = value.strip()
    parsed: Optional[datetime] = None
    for fmt in LOCAL_INPUT_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
            break
        except ValueError:
            continue

    if parsed is None:
        raise ValidationError(f"{label} must be a valid date and time.", field=label)

    try:
        return to_canonical_utc(parsed.replace(tzinfo=offset))
    except OverflowError:
        raise ValidationError(f"{label} is out of range.", field=label)


def utc_to_local(value: Union[str, datetime], offset: timezone) -> str:
    """Render a UTC instant as station wall-clock ``YYYY-MM-DDTHH:MM``.

    Exact inverse of :func:`local_to_utc` at minute resolution.
    """
    instant = parse_instant(value) if isinstance(value, str) else value
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(offset).strftime(LOCAL_OUTPUT_FORMAT)


def format_with_offset(instant: datetime, offset: timezone) -> str:
    """Render an instant in the station offset with an explicit suffix (``...+05:30``)."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(offset).isoformat(timespec="seconds")


def total_duration_seconds(tracks: Iterable[Track]) -> float:
    return sum(track.track_duration_seconds for track in tracks)


def derive_end_time(start_utc: str, tracks: Iterable[Track], offset: timezone) -> str:
    """End of an event that plays its tracks back to back from ``start_utc``."""
    start = parse_instant(start_utc)
    total = total_duration_seconds(tracks)
    if not math.isfinite(total):
        raise ValidationError("Total track duration must be finite.", field="tracks")

    try:
        end = start + timedelta(seconds=total)
    except OverflowError:
        raise ValidationError("end_time_utc is out of range.", field="end_time_utc")

    return ensure_iso_instant(format_with_offset(end, offset), "end_time_utc")


def is_expired(event: Event, now: datetime) -> bool:
    """An event is expired once its end time is at or before ``now``."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return parse_instant(event.end_time_utc) <= now


def format_duration(seconds: float) -> str:
    """Format seconds as ``m:ss``."""
    mins = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{mins}:{secs:02d}"
