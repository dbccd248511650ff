"""Track model for the event catalog."""
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Track(BaseModel):
    """One uploaded audio file already committed to the blob store.

    Tracks are embedded by value in their event; the catalog never mutates them.
    """
    model_config = ConfigDict(extra="ignore", frozen=True)

    track_id: str = Field(..., min_length=1, description="Identifier assigned at upload time")
    track_name: str = Field(..., min_length=1, description="Display name")
    track_url: str = Field(..., min_length=1, description="Absolute blob store locator")
    track_duration_seconds: Union[int, float] = Field(..., ge=0, description="Track duration in seconds")
    track_bitrate_kbps: Optional[Union[int, float]] = Field(None, ge=0, description="Bitrate in kbps")
    track_size_bytes: Optional[int] = Field(None, ge=0, description="File size in bytes")

    def __repr__(self) -> str:
        return f"<Track(track_id='{self.track_id}', track_name='{self.track_name}')>"
