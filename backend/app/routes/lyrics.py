"""Song lyrics routes, including plain-text parsing and normalization."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import delete
from sqlmodel import Session, func, select

from app.database import get_session
from app.models.song import Chord, Lyric, SongStructure
from app.routes.songs import LyricDetail, delete_song_content, lyric_details
from app.services import lyrics_normalizer, lyrics_parser
from app.services.lyrics_parser import LyricsParseError
from app.utils.lookups import require_lyric, require_song
from app.utils.permissions import check_user_member_of_band
from app.utils.sql import scalar_int

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/bands/{band_id}/songs/{song_id}/lyrics",
    dependencies=[Depends(check_user_member_of_band())],
)


# ============================================================================
# Request/Response Models
# ============================================================================


class LyricCreate(BaseModel):
    structure_id: int
    lyrics: str
    position: int = Field(ge=1)


class LyricUpdate(BaseModel):
    structure_id: Optional[int] = None
    lyrics: Optional[str] = None
    position: Optional[int] = Field(default=None, ge=1)


class LyricPosition(BaseModel):
    id: int
    position: int = Field(ge=1)


class TextContent(BaseModel):
    text_content: str = Field(min_length=1)


class NormalizeRequest(BaseModel):
    lyric_ids: List[int]


class LyricResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    song_id: int
    structure_id: int
    lyrics: str
    position: int


class FailedLyric(BaseModel):
    id: int
    error: str


class NormalizeResponse(BaseModel):
    message: str
    success: List[int]
    failed: List[FailedLyric]
    not_found: List[int]


def _lyric_count(session: Session, song_id: int) -> int:
    return scalar_int(session.exec(select(func.count(Lyric.id)).where(Lyric.song_id == song_id)).one())


def _position_taken(session: Session, song_id: int, position: int, exclude_id: int = None) -> bool:
    query = select(Lyric).where(Lyric.song_id == song_id, Lyric.position == position)
    if exclude_id is not None:
        query = query.where(Lyric.id != exclude_id)
    return session.exec(query).first() is not None


def _require_structure(session: Session, structure_id: int) -> None:
    if not session.get(SongStructure, structure_id):
        raise HTTPException(status_code=404, detail="Song structure not found")


def _save_chords(session: Session, lyric_id: int, chords: List[dict]) -> None:
    for chord in chords:
        session.add(Chord(lyric_id=lyric_id, **chord))


# ============================================================================
# Endpoints
# ============================================================================


@router.post("", response_model=LyricResponse, status_code=201)
def create_lyric(band_id: int, song_id: int, payload: LyricCreate, session: Session = Depends(get_session)):
    require_song(session, song_id, band_id)
    _require_structure(session, payload.structure_id)

    if _position_taken(session, song_id, payload.position):
        raise HTTPException(status_code=400, detail="Position already taken")
    count = _lyric_count(session, song_id)
    if payload.position > count + 1:
        raise HTTPException(status_code=400, detail=f"Position must be between 1 and {count + 1}")

    lyric = Lyric(song_id=song_id, **payload.model_dump())
    session.add(lyric)
    session.commit()
    session.refresh(lyric)
    return lyric


@router.get("", response_model=List[LyricDetail])
def list_lyrics(band_id: int, song_id: int, session: Session = Depends(get_session)):
    require_song(session, song_id, band_id)
    return lyric_details(session, song_id)


@router.patch("", response_model=List[LyricResponse])
def update_lyric_positions(
    band_id: int, song_id: int, payload: List[LyricPosition], session: Session = Depends(get_session)
):
    """Reorder lyrics in bulk. The resulting positions must stay unique."""
    require_song(session, song_id, band_id)
    lyrics = {lyric.id: lyric for lyric in session.exec(select(Lyric).where(Lyric.song_id == song_id)).all()}

    missing = [item.id for item in payload if item.id not in lyrics]
    if missing:
        raise HTTPException(status_code=404, detail=f"Lyrics not found: {missing}")

    final = {lyric_id: lyric.position for lyric_id, lyric in lyrics.items()}
    final.update({item.id: item.position for item in payload})
    if len(set(final.values())) != len(final):
        raise HTTPException(status_code=400, detail="Position already taken")

    for item in payload:
        lyrics[item.id].position = item.position
        session.add(lyrics[item.id])
    session.commit()
    return session.exec(select(Lyric).where(Lyric.song_id == song_id).order_by(Lyric.position)).all()


@router.delete("/remove-all")
def remove_all_lyrics(band_id: int, song_id: int, session: Session = Depends(get_session)) -> dict:
    require_song(session, song_id, band_id)
    count = _lyric_count(session, song_id)
    delete_song_content(session, song_id)
    session.commit()
    return {"message": f"Deleted {count} lyrics and their associated chords"}


@router.post("/parse-text", status_code=201)
def parse_text(band_id: int, song_id: int, payload: TextContent, session: Session = Depends(get_session)) -> dict:
    """Append lyrics and chords parsed from a plain-text song sheet"""
    require_song(session, song_id, band_id)
    try:
        parsed = lyrics_parser.parse_text(payload.text_content)
    except LyricsParseError as e:
        raise HTTPException(status_code=400, detail=str(e))

    position = _lyric_count(session, song_id)
    chords_saved = 0
    for item in parsed:
        position += 1
        lyric = Lyric(song_id=song_id, structure_id=item.structure_id, lyrics=item.lyrics, position=position)
        session.add(lyric)
        session.flush()
        _save_chords(session, lyric.id, item.chords)
        chords_saved += len(item.chords)
    session.commit()

    logger.info(f"Parsed {len(parsed)} lyrics and {chords_saved} chords for song {song_id}")
    return {
        "message": "Lyrics and chords processed with validated notes and qualities!",
        "lyrics_created": len(parsed),
        "chords_created": chords_saved,
    }


@router.post("/normalize", response_model=NormalizeResponse)
def normalize_lyrics(band_id: int, song_id: int, payload: NormalizeRequest, session: Session = Depends(get_session)):
    require_song(session, song_id, band_id)
    success, failed, not_found = [], [], []
    for lyric_id in payload.lyric_ids:
        lyric = session.get(Lyric, lyric_id)
        if not lyric or lyric.song_id != song_id:
            not_found.append(lyric_id)
            continue
        try:
            lyric.lyrics = lyrics_normalizer.normalize(lyric.lyrics)
            session.add(lyric)
            session.commit()
            success.append(lyric_id)
        except Exception as e:
            session.rollback()
            logger.error(f"Failed to normalize lyric {lyric_id}: {e}")
            failed.append(FailedLyric(id=lyric_id, error=str(e) or "Unknown error"))

    return NormalizeResponse(
        message=f"Normalized {len(success)} of {len(payload.lyric_ids)} lyrics",
        success=success,
        failed=failed,
        not_found=not_found,
    )


@router.get("/{lyric_id}", response_model=LyricResponse)
def get_lyric(band_id: int, song_id: int, lyric_id: int, session: Session = Depends(get_session)):
    require_song(session, song_id, band_id)
    return require_lyric(session, lyric_id, song_id)


@router.patch("/{lyric_id}", response_model=LyricResponse)
def update_lyric(
    band_id: int, song_id: int, lyric_id: int, payload: LyricUpdate, session: Session = Depends(get_session)
):
    require_song(session, song_id, band_id)
    lyric = require_lyric(session, lyric_id, song_id)
    data = payload.model_dump(exclude_unset=True)

    if data.get("position") is not None and _position_taken(session, song_id, data["position"], exclude_id=lyric.id):
        raise HTTPException(status_code=400, detail="Position already taken")
    if data.get("structure_id") is not None:
        _require_structure(session, data["structure_id"])

    for field, value in data.items():
        if value is not None:
            setattr(lyric, field, value)
    session.add(lyric)
    session.commit()
    session.refresh(lyric)
    return lyric


@router.patch("/{lyric_id}/parse", response_model=LyricDetail)
def parse_single_lyric(
    band_id: int, song_id: int, lyric_id: int, payload: TextContent, session: Session = Depends(get_session)
):
    """Replace one lyric's text and chords with those parsed from a chord line + lyric line"""
    require_song(session, song_id, band_id)
    lyric = require_lyric(session, lyric_id, song_id)
    try:
        parsed = lyrics_parser.parse_single(payload.text_content)
    except LyricsParseError as e:
        raise HTTPException(status_code=400, detail=str(e))

    session.execute(delete(Chord).where(Chord.lyric_id == lyric.id))
    lyric.lyrics = parsed.lyrics
    session.add(lyric)
    _save_chords(session, lyric.id, parsed.chords)
    session.commit()

    return next(d for d in lyric_details(session, song_id) if d.id == lyric.id)


@router.delete("/{lyric_id}")
def delete_lyric(band_id: int, song_id: int, lyric_id: int, session: Session = Depends(get_session)) -> dict:
    require_song(session, song_id, band_id)
    lyric = require_lyric(session, lyric_id, song_id)
    session.execute(delete(Chord).where(Chord.lyric_id == lyric.id))
    session.delete(lyric)
    session.commit()
    return {"message": "Lyric deleted", "id": lyric_id}
