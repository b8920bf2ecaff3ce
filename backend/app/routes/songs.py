from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import delete
from sqlmodel import Session, func, select

from app.database import get_session
from app.models.event import EventSong
from app.models.song import Chord, Lyric, Song, SongStructure
from app.utils.lookups import require_song
from app.utils.permissions import check_plan_limit, check_user_member_of_band, require_user
from app.utils.sql import scalar_int

router = APIRouter()

member_of_band = check_user_member_of_band()


# ============================================================================
# Request/Response Models
# ============================================================================


class SongCreate(BaseModel):
    title: str = Field(min_length=1)
    artist: Optional[str] = None
    song_type: Literal["worship", "praise"] = "worship"
    youtube_link: Optional[str] = None
    key: Optional[str] = None
    tempo: Optional[int] = Field(default=None, gt=0)


class SongUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    artist: Optional[str] = None
    song_type: Optional[Literal["worship", "praise"]] = None
    youtube_link: Optional[str] = None
    key: Optional[str] = None
    tempo: Optional[int] = Field(default=None, gt=0)


class SongResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    band_id: int
    title: str
    artist: Optional[str] = None
    song_type: str
    youtube_link: Optional[str] = None
    key: Optional[str] = None
    tempo: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class SongCounts(BaseModel):
    events: int
    lyrics: int


class SongListItem(SongResponse):
    count: SongCounts = Field(serialization_alias="_count")


class ChordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    root_note: str
    chord_quality: str
    slash_chord: Optional[str] = None
    slash_quality: Optional[str] = None
    position: int


class StructureResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str


class LyricDetail(BaseModel):
    id: int
    position: int
    lyrics: str
    structure: StructureResponse
    chords: List[ChordResponse]


class SongDetailResponse(SongResponse):
    lyrics: List[LyricDetail]


class SongPage(BaseModel):
    total: int
    page: int
    limit: int
    data: List[SongResponse]


def lyric_details(session: Session, song_id: int) -> List[LyricDetail]:
    """Lyrics ordered by position, each with its structure and ordered chords"""
    rows = session.exec(
        select(Lyric, SongStructure)
        .join(SongStructure, SongStructure.id == Lyric.structure_id)
        .where(Lyric.song_id == song_id)
        .order_by(Lyric.position)
    ).all()
    details = []
    for lyric, structure in rows:
        chords = session.exec(select(Chord).where(Chord.lyric_id == lyric.id).order_by(Chord.position)).all()
        details.append(
            LyricDetail(
                id=lyric.id,
                position=lyric.position,
                lyrics=lyric.lyrics,
                structure=StructureResponse.model_validate(structure),
                chords=[ChordResponse.model_validate(c) for c in chords],
            )
        )
    return details


def delete_song_content(session: Session, song_id: int) -> None:
    lyric_ids = select(Lyric.id).where(Lyric.song_id == song_id)
    session.execute(delete(Chord).where(Chord.lyric_id.in_(lyric_ids)))
    session.execute(delete(Lyric).where(Lyric.song_id == song_id))


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/songs", response_model=SongPage, dependencies=[Depends(require_user)])
def paginate_songs(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    session: Session = Depends(get_session),
):
    total = scalar_int(session.exec(select(func.count(Song.id))).one())
    songs = session.exec(select(Song).order_by(Song.title, Song.id).offset((page - 1) * limit).limit(limit)).all()
    return SongPage(total=total, page=page, limit=limit, data=[SongResponse.model_validate(s) for s in songs])


@router.post(
    "/bands/{band_id}/songs",
    response_model=SongResponse,
    status_code=201,
    dependencies=[Depends(member_of_band), Depends(check_plan_limit("songs"))],
)
def create_song(band_id: int, payload: SongCreate, session: Session = Depends(get_session)):
    song = Song(band_id=band_id, **payload.model_dump())
    session.add(song)
    session.commit()
    session.refresh(song)
    return song


@router.get(
    "/bands/{band_id}/songs",
    response_model=List[SongListItem],
    response_model_by_alias=True,
    dependencies=[Depends(member_of_band)],
)
def list_songs(band_id: int, session: Session = Depends(get_session)):
    songs = session.exec(select(Song).where(Song.band_id == band_id).order_by(Song.title, Song.id)).all()
    items = []
    for song in songs:
        events = scalar_int(session.exec(select(func.count()).select_from(EventSong).where(EventSong.song_id == song.id)).one())
        lyrics = scalar_int(session.exec(select(func.count(Lyric.id)).where(Lyric.song_id == song.id)).one())
        items.append(
            SongListItem(
                **SongResponse.model_validate(song).model_dump(),
                count=SongCounts(events=events, lyrics=lyrics),
            )
        )
    return items


@router.get("/bands/{band_id}/songs/{song_id}", response_model=SongDetailResponse, dependencies=[Depends(member_of_band)])
def get_song(band_id: int, song_id: int, session: Session = Depends(get_session)):
    song = require_song(session, song_id, band_id)
    return SongDetailResponse(**SongResponse.model_validate(song).model_dump(), lyrics=lyric_details(session, song.id))


@router.patch("/bands/{band_id}/songs/{song_id}", response_model=SongResponse, dependencies=[Depends(member_of_band)])
def update_song(band_id: int, song_id: int, payload: SongUpdate, session: Session = Depends(get_session)):
    song = require_song(session, song_id, band_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(song, field, value)
    session.add(song)
    session.commit()
    session.refresh(song)
    return song


@router.delete("/bands/{band_id}/songs/{song_id}", status_code=204, dependencies=[Depends(member_of_band)])
def delete_song(band_id: int, song_id: int, session: Session = Depends(get_session)):
    """Delete a song with its lyrics, chords and event setlist entries"""
    song = require_song(session, song_id, band_id)
    delete_song_content(session, song.id)
    session.execute(delete(EventSong).where(EventSong.song_id == song.id))
    session.delete(song)
    session.commit()
    return None
