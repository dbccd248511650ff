"""Event model for the event catalog."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .track import Track


class Event(BaseModel):
    """A scheduled programming slot with a time window and an ordered track list.

    ``start_time_utc``/``end_time_utc`` hold canonical UTC instants
    (``YYYY-MM-DDTHH:MM:SS.sssZ``) so string order equals chronological order.
    """
    model_config = ConfigDict(extra="ignore")

    event_id: str = Field(..., min_length=1)
    event_name: str = Field(..., min_length=1)
    artist_name: str = Field(..., min_length=1)
    start_time_utc: str
    end_time_utc: str
    tracks: List[Track] = Field(default_factory=list)  # playback order
    cover_image_url: Optional[str] = None

    @field_validator("start_time_utc", "end_time_utc")
    @classmethod
    def _must_be_iso_instant(cls, value: str) -> str:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
        return value

    def asset_locators(self) -> List[str]:
        """Blob locators referenced by this event: tracks in order, then the cover."""
        locators = [track.track_url for track in self.tracks]
        if self.cover_image_url:
            locators.append(self.cover_image_url)
        return locators

    def total_duration_seconds(self) -> float:
        return sum(track.track_duration_seconds for track in self.tracks)

    def to_document(self) -> Dict[str, Any]:
        """Serialize for the catalog document, omitting unset optional fields."""
        return self.model_dump(mode="json", exclude_none=True)

    def __repr__(self) -> str:
        return f"<Event(event_id='{self.event_id}', event_name='{self.event_name}', start='{self.start_time_utc}')>"
