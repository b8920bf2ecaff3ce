"""Band events and their setlists."""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import delete
from sqlmodel import Session, col, select

from app.database import get_session
from app.models.event import Event, EventSong
from app.models.song import Song
from app.services import bands_service
from app.utils.lookups import require_event
from app.utils.permissions import check_plan_limit, check_user_member_of_band, current_user_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bands/{band_id}/events")

member_of_band = check_user_member_of_band()


# ============================================================================
# Request/Response Models
# ============================================================================


class EventCreate(BaseModel):
    title: str = Field(min_length=1)
    date: datetime


class EventUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    date: Optional[datetime] = None


class EventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    band_id: int
    title: str
    date: datetime
    created_at: datetime
    updated_at: datetime


class SongDetail(BaseModel):
    song_id: int
    order: int = Field(default=1, ge=1)
    transpose: int = 0


class EventSongsPayload(BaseModel):
    song_details: List[SongDetail] = Field(min_length=1)


class SongDetailUpdate(BaseModel):
    song_id: int
    order: Optional[int] = Field(default=None, ge=1)
    transpose: Optional[int] = None


class EventSongsUpdate(BaseModel):
    song_details: List[SongDetailUpdate] = Field(min_length=1)


class EventSongsDelete(BaseModel):
    song_ids: List[int] = Field(min_length=1)


class EventSongItem(BaseModel):
    song_id: int
    title: str
    artist: Optional[str] = None
    key: Optional[str] = None
    order: int
    transpose: int


def _event_songs(session: Session, event_id: int) -> List[EventSongItem]:
    rows = session.exec(
        select(EventSong, Song)
        .join(Song, Song.id == EventSong.song_id)
        .where(EventSong.event_id == event_id)
        .order_by(EventSong.order, EventSong.song_id)
    ).all()
    return [
        EventSongItem(
            song_id=song.id,
            title=song.title,
            artist=song.artist,
            key=song.key,
            order=link.order,
            transpose=link.transpose,
        )
        for link, song in rows
    ]


def _check_songs_in_band(session: Session, band_id: int, song_ids: List[int]) -> None:
    found = set(session.exec(select(Song.id).where(Song.band_id == band_id, col(Song.id).in_(song_ids))).all())
    missing = [song_id for song_id in song_ids if song_id not in found]
    if missing:
        raise HTTPException(status_code=400, detail=f"Songs do not belong to this band: {missing}")


# ============================================================================
# Events
# ============================================================================


@router.post(
    "",
    response_model=EventResponse,
    status_code=201,
    dependencies=[Depends(member_of_band), Depends(check_plan_limit("events_per_month"))],
)
def create_event(band_id: int, payload: EventCreate, session: Session = Depends(get_session)):
    event = Event(band_id=band_id, title=payload.title, date=payload.date)
    session.add(event)
    session.commit()
    session.refresh(event)
    return event


@router.get("", response_model=List[EventResponse], dependencies=[Depends(member_of_band)])
def list_events(
    band_id: int,
    include_all_dates: bool = Query(False),
    session: Session = Depends(get_session),
):
    query = select(Event).where(Event.band_id == band_id)
    if not include_all_dates:
        query = query.where(Event.date >= datetime.utcnow())
    return session.exec(query.order_by(Event.date)).all()


@router.get("/{event_id}", response_model=EventResponse, dependencies=[Depends(member_of_band)])
def get_event(band_id: int, event_id: int, session: Session = Depends(get_session)):
    return require_event(session, event_id, band_id)


@router.patch("/{event_id}", response_model=EventResponse, dependencies=[Depends(member_of_band)])
def update_event(band_id: int, event_id: int, payload: EventUpdate, session: Session = Depends(get_session)):
    event = require_event(session, event_id, band_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(event, field, value)
    session.add(event)
    session.commit()
    session.refresh(event)
    return event


@router.delete("/{event_id}", dependencies=[Depends(member_of_band)])
def delete_event(band_id: int, event_id: int, session: Session = Depends(get_session)) -> dict:
    event = require_event(session, event_id, band_id)
    session.execute(delete(EventSong).where(EventSong.event_id == event.id))
    session.delete(event)
    session.commit()
    return {"message": "Event deleted", "id": event_id}


@router.get("/{event_id}/change-event-manager")
def change_event_manager(
    band_id: int,
    event_id: int,
    user: dict = Depends(member_of_band),
    session: Session = Depends(get_session),
) -> dict:
    """Make the caller the band's only event manager"""
    require_event(session, event_id, band_id)
    user_id = current_user_id(user)
    try:
        bands_service.set_event_manager(session, band_id, user_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    session.commit()
    logger.info(f"User {user_id} is now event manager of band {band_id}")
    return {"message": "Event manager updated", "band_id": band_id, "user_id": user_id}


# ============================================================================
# Setlist
# ============================================================================


@router.get("/{event_id}/songs", response_model=List[EventSongItem], dependencies=[Depends(member_of_band)])
def list_event_songs(band_id: int, event_id: int, session: Session = Depends(get_session)):
    require_event(session, event_id, band_id)
    return _event_songs(session, event_id)


@router.post(
    "/{event_id}/songs",
    response_model=List[EventSongItem],
    status_code=201,
    dependencies=[Depends(member_of_band)],
)
def add_event_songs(band_id: int, event_id: int, payload: EventSongsPayload, session: Session = Depends(get_session)):
    event = require_event(session, event_id, band_id)
    song_ids = [d.song_id for d in payload.song_details]
    if len(set(song_ids)) != len(song_ids):
        raise HTTPException(status_code=400, detail="Duplicate songs in request")
    _check_songs_in_band(session, band_id, song_ids)

    existing = set(session.exec(select(EventSong.song_id).where(EventSong.event_id == event.id)).all())
    already = [song_id for song_id in song_ids if song_id in existing]
    if already:
        raise HTTPException(status_code=409, detail=f"Songs already in event: {already}")

    for detail in payload.song_details:
        session.add(EventSong(event_id=event.id, **detail.model_dump()))
    session.commit()
    return _event_songs(session, event.id)


@router.patch("/{event_id}/songs", response_model=List[EventSongItem], dependencies=[Depends(member_of_band)])
def update_event_songs(
    band_id: int, event_id: int, payload: EventSongsUpdate, session: Session = Depends(get_session)
):
    """Update order and transpose of songs already in the event"""
    event = require_event(session, event_id, band_id)
    for detail in payload.song_details:
        link = session.get(EventSong, (event.id, detail.song_id))
        if not link:
            raise HTTPException(status_code=404, detail=f"Song {detail.song_id} is not in this event")
        for field, value in detail.model_dump(exclude_unset=True, exclude={"song_id"}).items():
            if value is not None:
                setattr(link, field, value)
        session.add(link)
    session.commit()
    return _event_songs(session, event.id)


@router.delete("/{event_id}/songs", dependencies=[Depends(member_of_band)])
def remove_event_songs(
    band_id: int, event_id: int, payload: EventSongsDelete, session: Session = Depends(get_session)
) -> dict:
    event = require_event(session, event_id, band_id)
    result = session.execute(
        delete(EventSong).where(EventSong.event_id == event.id, col(EventSong.song_id).in_(payload.song_ids))
    )
    session.commit()
    return {"message": "Songs removed from event", "deleted": result.rowcount}
