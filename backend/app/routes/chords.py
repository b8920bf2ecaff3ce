from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlmodel import Session, func, select

from app.database import get_session
from app.models.song import CHORD_QUALITIES, MAX_CHORDS_PER_LYRIC, Chord
from app.routes.songs import ChordResponse
from app.utils.lookups import require_chord, require_lyric, require_song
from app.utils.permissions import check_user_member_of_band
from app.utils.sql import scalar_int

router = APIRouter(
    prefix="/bands/{band_id}/songs/{song_id}/lyrics/{lyric_id}/chords",
    dependencies=[Depends(check_user_member_of_band())],
)

RootNote = Literal["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]


def _check_quality(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in CHORD_QUALITIES:
        raise ValueError(f"Invalid chord quality: {value}")
    return value


# ============================================================================
# Request/Response Models
# ============================================================================


class ChordCreate(BaseModel):
    root_note: RootNote
    chord_quality: str = ""
    slash_chord: Optional[RootNote] = None
    slash_quality: Optional[str] = None
    position: int = Field(ge=0, le=MAX_CHORDS_PER_LYRIC)

    @field_validator("chord_quality", "slash_quality")
    @classmethod
    def validate_quality(cls, value: Optional[str]) -> Optional[str]:
        return _check_quality(value)


class ChordUpdate(BaseModel):
    root_note: Optional[RootNote] = None
    chord_quality: Optional[str] = None
    slash_chord: Optional[RootNote] = None
    slash_quality: Optional[str] = None
    position: Optional[int] = Field(default=None, ge=0, le=MAX_CHORDS_PER_LYRIC)

    @field_validator("chord_quality", "slash_quality")
    @classmethod
    def validate_quality(cls, value: Optional[str]) -> Optional[str]:
        return _check_quality(value)


def _position_exists(session: Session, lyric_id: int, position: int, exclude_id: int = None) -> bool:
    query = select(Chord).where(Chord.lyric_id == lyric_id, Chord.position == position)
    if exclude_id is not None:
        query = query.where(Chord.id != exclude_id)
    return session.exec(query).first() is not None


def _load_lyric(session: Session, band_id: int, song_id: int, lyric_id: int):
    require_song(session, song_id, band_id)
    return require_lyric(session, lyric_id, song_id)


# ============================================================================
# Endpoints
# ============================================================================


@router.post("", response_model=ChordResponse, status_code=201)
def create_chord(
    band_id: int, song_id: int, lyric_id: int, payload: ChordCreate, session: Session = Depends(get_session)
):
    lyric = _load_lyric(session, band_id, song_id, lyric_id)

    count = scalar_int(session.exec(select(func.count(Chord.id)).where(Chord.lyric_id == lyric.id)).one())
    if count >= MAX_CHORDS_PER_LYRIC:
        raise HTTPException(status_code=400, detail=f"Maximum {MAX_CHORDS_PER_LYRIC} chords allowed")
    if _position_exists(session, lyric.id, payload.position):
        raise HTTPException(status_code=400, detail="Position already exists")

    chord = Chord(lyric_id=lyric.id, **payload.model_dump())
    session.add(chord)
    session.commit()
    session.refresh(chord)
    return chord


@router.get("", response_model=List[ChordResponse])
def list_chords(band_id: int, song_id: int, lyric_id: int, session: Session = Depends(get_session)):
    lyric = _load_lyric(session, band_id, song_id, lyric_id)
    return session.exec(select(Chord).where(Chord.lyric_id == lyric.id).order_by(Chord.position)).all()


@router.get("/{chord_id}", response_model=ChordResponse)
def get_chord(band_id: int, song_id: int, lyric_id: int, chord_id: int, session: Session = Depends(get_session)):
    lyric = _load_lyric(session, band_id, song_id, lyric_id)
    return require_chord(session, chord_id, lyric.id)


@router.patch("/{chord_id}", response_model=ChordResponse)
def update_chord(
    band_id: int,
    song_id: int,
    lyric_id: int,
    chord_id: int,
    payload: ChordUpdate,
    session: Session = Depends(get_session),
):
    lyric = _load_lyric(session, band_id, song_id, lyric_id)
    chord = require_chord(session, chord_id, lyric.id)
    data = payload.model_dump(exclude_unset=True)

    if data.get("position") is not None and _position_exists(session, lyric.id, data["position"], exclude_id=chord.id):
        raise HTTPException(status_code=400, detail="Position already exists")

    for field, value in data.items():
        if value is None and field not in ("slash_chord", "slash_quality"):
            continue
        setattr(chord, field, value)
    session.add(chord)
    session.commit()
    session.refresh(chord)
    return chord


@router.delete("/{chord_id}")
def delete_chord(band_id: int, song_id: int, lyric_id: int, chord_id: int, session: Session = Depends(get_session)):
    lyric = _load_lyric(session, band_id, song_id, lyric_id)
    chord = require_chord(session, chord_id, lyric.id)
    session.delete(chord)
    session.commit()
    return {"message": "Chord deleted", "id": chord_id}
