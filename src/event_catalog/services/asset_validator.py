"""
Validation of the asset references attached to an event payload.

Payloads arrive as untyped JSON. Only allow-listed track fields are carried
into the catalog; everything else a client sends is dropped.
"""
import math
from typing import Any, Dict, List, Mapping, Optional

from ..exceptions import ValidationError
from ..models import Track

REQUIRED_TRACK_STRINGS = ("track_id", "track_name", "track_url")
OPTIONAL_TRACK_NUMBERS = ("track_bitrate_kbps", "track_size_bytes")


def _is_number(value: Any) -> bool:
    # bool is an int subclass; JSON true/false is never a duration
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_non_negative_number(value: Any) -> bool:
    if not _is_number(value):
        return False
    try:
        return math.isfinite(value) and value >= 0
    except OverflowError:
        # JSON integers beyond float range
        return False


def ensure_name(value: Any, label: str) -> str:
    """Return a trimmed non-empty string or raise ValidationError."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} is required.", field=label)
    return value.strip()


def _normalize_track(item: Any, position: int) -> Track:
    if not isinstance(item, Mapping):
        raise ValidationError(
            f"tracks[{position}] must be an object.",
            field="tracks",
            details={"index": position},
        )

    normalized: Dict[str, Any] = {}
    for key in REQUIRED_TRACK_STRINGS:
        value = item.get(key)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(
                f"tracks[{position}].{key} is required.",
                field="tracks",
                details={"index": position, "key": key},
            )
        normalized[key] = value.strip()

    duration = item.get("track_duration_seconds")
    if not _is_non_negative_number(duration):
        raise ValidationError(
            f"tracks[{position}].track_duration_seconds must be a non-negative number.",
            field="tracks",
            details={"index": position, "key": "track_duration_seconds"},
        )
    normalized["track_duration_seconds"] = duration

    for key in OPTIONAL_TRACK_NUMBERS:
        value = item.get(key)
        if _is_non_negative_number(value):
            normalized[key] = int(value) if key == "track_size_bytes" else value

    return Track(**normalized)


def ensure_tracks(value: Any) -> List[Track]:
    """Validate a claimed track list and return normalized Track objects.

    Args:
        value: Untyped payload field

    Returns:
        Tracks in the given (playback) order

    Raises:
        ValidationError: when the list is empty, an element is malformed,
            or a track_id repeats within the list
    """
    if not isinstance(value, list) or not value:
        raise ValidationError("tracks must be a non-empty array.", field="tracks")

    tracks = [_normalize_track(item, position) for position, item in enumerate(value)]

    seen = set()
    for position, track in enumerate(tracks):
        if track.track_id in seen:
            raise ValidationError(
                f"tracks[{position}].track_id '{track.track_id}' is duplicated.",
                field="tracks",
                details={"index": position, "track_id": track.track_id},
            )
        seen.add(track.track_id)

    return tracks


def ensure_cover_image_url(value: Any) -> Optional[str]:
    """Normalize an optional cover reference.

    ``None`` or an empty/blank string clears the cover; a non-empty string
    (trimmed) sets it; any other type is rejected.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("cover_image_url must be a string if provided.", field="cover_image_url")
    return value.strip() or None
