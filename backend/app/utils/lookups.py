"""
Reusable 404 guards for nested resources.

Each helper loads a row and checks it belongs to its parent, raising 404
otherwise, so routers never act on another band's songs or lyrics.
"""

from fastapi import HTTPException
from sqlmodel import Session

from app.models.band import Band
from app.models.church import Church, Membership
from app.models.event import Event
from app.models.song import Chord, Lyric, Song
from app.models.user import User


def require_user_record(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def require_church(session: Session, church_id: int) -> Church:
    church = session.get(Church, church_id)
    if not church:
        raise HTTPException(status_code=404, detail="Church not found")
    return church


def require_membership(session: Session, membership_id: int, user_id: int = None) -> Membership:
    membership = session.get(Membership, membership_id)
    if not membership or (user_id is not None and membership.user_id != user_id):
        raise HTTPException(status_code=404, detail="Membership not found")
    return membership


def require_band(session: Session, band_id: int) -> Band:
    band = session.get(Band, band_id)
    if not band:
        raise HTTPException(status_code=404, detail="Band not found")
    return band


def require_song(session: Session, song_id: int, band_id: int) -> Song:
    song = session.get(Song, song_id)
    if not song or song.band_id != band_id:
        raise HTTPException(status_code=404, detail="Song not found")
    return song


def require_lyric(session: Session, lyric_id: int, song_id: int) -> Lyric:
    lyric = session.get(Lyric, lyric_id)
    if not lyric or lyric.song_id != song_id:
        raise HTTPException(status_code=404, detail="Lyric not found")
    return lyric


def require_chord(session: Session, chord_id: int, lyric_id: int) -> Chord:
    chord = session.get(Chord, chord_id)
    if not chord or chord.lyric_id != lyric_id:
        raise HTTPException(status_code=404, detail="Chord not found")
    return chord


def require_event(session: Session, event_id: int, band_id: int) -> Event:
    event = session.get(Event, event_id)
    if not event or event.band_id != band_id:
        raise HTTPException(status_code=404, detail="Event not found")
    return event
