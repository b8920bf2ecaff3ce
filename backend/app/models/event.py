from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class Event(SQLModel, table=True):
    """A scheduled band event (service, rehearsal, concert)."""

    id: Optional[int] = Field(default=None, primary_key=True)
    band_id: int = Field(foreign_key="band.id", index=True)
    title: str
    date: datetime
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})


class EventSong(SQLModel, table=True):
    __tablename__ = "event_song"

    event_id: int = Field(foreign_key="event.id", primary_key=True)
    song_id: int = Field(foreign_key="song.id", primary_key=True)
    order: int = Field(default=1)
    transpose: int = Field(default=0)
