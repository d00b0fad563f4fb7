from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, Tuple


class IncidentBase(BaseModel):
    id: str = Field(..., min_length=1)
    crime_type: str = "Unknown"
    location: str = "Unknown"
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    timestamp: datetime
    timestamp_inferred: bool = False
    description: Optional[str] = None


class Incident(IncidentBase):
    class Config:
        frozen = True

    @property
    def is_spatial(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class IncidentRead(IncidentBase):
    is_spatial: bool

    @classmethod
    def from_incident(cls, incident: Incident) -> "IncidentRead":
        return cls(**incident.model_dump(), is_spatial=incident.is_spatial)


class IncidentBatch(BaseModel):
    """One immutable snapshot of the feed, replaced wholesale on every poll."""

    incidents: Tuple[Incident, ...] = ()
    fetched_at: Optional[datetime] = None
    version: int = 0
    source: str = "empty"

    class Config:
        frozen = True

    def __len__(self) -> int:
        return len(self.incidents)
