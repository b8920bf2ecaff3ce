from datetime import datetime
from typing import List, Optional

from sqlmodel import Field, Relationship, SQLModel

DEFAULT_SONG_STRUCTURES = [
    (1, "intro"),
    (2, "verse"),
    (3, "pre-chorus"),
    (4, "chorus"),
    (5, "bridge"),
    (6, "interlude"),
    (7, "solo"),
    (8, "outro"),
]

SONG_TYPES = ("worship", "praise")

ROOT_NOTES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")

CHORD_QUALITIES = (
    "", "m", "dim", "aug", "sus2", "sus4", "7", "maj7", "m7", "mMaj7", "dim7", "m7b5",
    "9", "maj9", "m9", "11", "maj11", "m11", "13", "maj13", "m13",
)

MAX_CHORDS_PER_LYRIC = 5


class SongStructure(SQLModel, table=True):
    __tablename__ = "song_structure"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(unique=True)


class Song(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    band_id: int = Field(foreign_key="band.id", index=True)
    title: str
    artist: Optional[str] = None
    song_type: str = Field(default="worship")  # worship|praise
    youtube_link: Optional[str] = None
    key: Optional[str] = None
    tempo: Optional[int] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})


class Lyric(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    song_id: int = Field(foreign_key="song.id", index=True)
    structure_id: int = Field(foreign_key="song_structure.id")
    lyrics: str
    position: int

    structure: Optional[SongStructure] = Relationship()
    chords: List["Chord"] = Relationship(back_populates="lyric")


class Chord(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    lyric_id: int = Field(foreign_key="lyric.id", index=True)
    root_note: str
    chord_quality: str = Field(default="")
    slash_chord: Optional[str] = None
    slash_quality: Optional[str] = None
    position: int

    lyric: Optional[Lyric] = Relationship(back_populates="chords")
