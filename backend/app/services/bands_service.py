"""
Band lifecycle: creation, membership, invitations and cascade deletion.

Service functions raise plain exceptions that routers translate to HTTP:
LookupError -> 404, PermissionError -> 403, ValueError -> 400.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import delete, or_
from sqlmodel import Session, col, func, select

from app.models.band import (
    BAND_LEADER_ROLE,
    BAND_MEMBER_ROLE,
    INVITATION_TTL_DAYS,
    MAX_PENDING_INVITATIONS,
    Band,
    BandInvitation,
    BandMember,
)
from app.models.event import Event, EventSong
from app.models.song import Chord, Lyric, Song
from app.models.subscription import BandSubscription
from app.models.user import User
from app.services import subscriptions_service
from app.utils.sql import scalar_int

logger = logging.getLogger(__name__)

DELETE_CONFIRMATION = "estoy seguro que esto es irreversible"
SEARCH_LIMIT = 10


def _count(session: Session, query) -> int:
    return scalar_int(session.exec(query).one())


def band_counts(session: Session, band_id: int) -> dict:
    return {
        "members": _count(session, select(func.count(BandMember.id)).where(BandMember.band_id == band_id)),
        "events": _count(session, select(func.count(Event.id)).where(Event.band_id == band_id)),
        "songs": _count(session, select(func.count(Song.id)).where(Song.band_id == band_id)),
    }


def serialize_band(band: Band, include_timestamps: bool = True) -> dict:
    data = {
        "id": band.id,
        "name": band.name,
        "description": band.description,
        "created_by": band.created_by,
    }
    if include_timestamps:
        data["created_at"] = band.created_at.isoformat()
        data["updated_at"] = band.updated_at.isoformat()
    return data


def serialize_event(event: Event) -> dict:
    return {"id": event.id, "title": event.title, "date": event.date.isoformat()}


def create_band(session: Session, user_id: int, name: str, description: Optional[str] = None) -> Band:
    """Create a band; the creator becomes its admin and event manager and a trial starts."""
    band = Band(name=name, description=description, created_by=user_id)
    session.add(band)
    session.flush()

    session.add(
        BandMember(
            user_id=user_id,
            band_id=band.id,
            role=BAND_LEADER_ROLE,
            active=True,
            is_admin=True,
            is_event_manager=True,
        )
    )
    subscriptions_service.create_trial_subscription(session, band.id)
    session.commit()
    session.refresh(band)
    logger.info(f"Band {band.id} created by user {user_id}")
    return band


def get_user_bands(session: Session, user_id: int) -> List[dict]:
    """Bands where the user is an active member, with upcoming events and counts."""
    bands = session.exec(
        select(Band)
        .join(BandMember, BandMember.band_id == Band.id)
        .where(BandMember.user_id == user_id, BandMember.active == True)  # noqa: E712
        .order_by(Band.id)
    ).all()

    now = datetime.utcnow()
    result = []
    for band in bands:
        events = session.exec(
            select(Event).where(Event.band_id == band.id, Event.date >= now).order_by(Event.date)
        ).all()
        data = serialize_band(band)
        data["events"] = [serialize_event(e) for e in events]
        data["_count"] = band_counts(session, band.id)
        result.append(data)
    return result


def band_detail(session: Session, band: Band) -> dict:
    """Band with counts, the five most scheduled songs and the five latest events."""
    usage = func.count(EventSong.event_id).label("usage")
    top_rows = session.exec(
        select(Song, usage)
        .join(EventSong, EventSong.song_id == Song.id, isouter=True)
        .where(Song.band_id == band.id)
        .group_by(Song.id)
        .order_by(usage.desc(), Song.id)
        .limit(5)
    ).all()
    recent_events = session.exec(
        select(Event).where(Event.band_id == band.id).order_by(col(Event.date).desc()).limit(5)
    ).all()

    data = serialize_band(band)
    data["_count"] = band_counts(session, band.id)
    data["top_songs"] = [
        {"id": song.id, "title": song.title, "artist": song.artist, "times_played": count}
        for song, count in top_rows
    ]
    data["recent_events"] = [serialize_event(e) for e in recent_events]
    return data


def delete_band(session: Session, band_id: int) -> None:
    """Remove a band and everything that hangs off it in one transaction."""
    song_ids = select(Song.id).where(Song.band_id == band_id)
    lyric_ids = select(Lyric.id).where(Lyric.song_id.in_(song_ids))
    event_ids = select(Event.id).where(Event.band_id == band_id)
    try:
        session.execute(delete(Chord).where(Chord.lyric_id.in_(lyric_ids)))
        session.execute(delete(Lyric).where(Lyric.song_id.in_(song_ids)))
        session.execute(delete(EventSong).where(EventSong.event_id.in_(event_ids)))
        session.execute(delete(EventSong).where(EventSong.song_id.in_(song_ids)))
        session.execute(delete(Song).where(Song.band_id == band_id))
        session.execute(delete(Event).where(Event.band_id == band_id))
        session.execute(delete(BandInvitation).where(BandInvitation.band_id == band_id))
        session.execute(delete(BandSubscription).where(BandSubscription.band_id == band_id))
        session.execute(delete(BandMember).where(BandMember.band_id == band_id))
        session.execute(delete(Band).where(Band.id == band_id))
        session.commit()
    except Exception:
        session.rollback()
        raise
    session.expire_all()
    logger.info(f"Band {band_id} deleted")


def get_member(session: Session, band_id: int, user_id: int) -> Optional[BandMember]:
    return session.exec(
        select(BandMember).where(BandMember.band_id == band_id, BandMember.user_id == user_id)
    ).first()


def list_members(session: Session, band_id: int) -> List[dict]:
    rows = session.exec(
        select(BandMember, User)
        .join(User, User.id == BandMember.user_id)
        .where(BandMember.band_id == band_id)
        .order_by(
            col(BandMember.is_admin).desc(),
            col(BandMember.is_event_manager).desc(),
            BandMember.created_at,
            BandMember.id,
        )
    ).all()
    return [serialize_member(member, user) for member, user in rows]


def serialize_member(member: BandMember, user: User) -> dict:
    return {
        "id": member.id,
        "role": member.role,
        "active": member.active,
        "is_admin": member.is_admin,
        "is_event_manager": member.is_event_manager,
        "created_at": member.created_at.isoformat(),
        "user": {"id": user.id, "name": user.name, "email": user.email, "phone": user.phone},
    }


def set_event_manager(session: Session, band_id: int, user_id: int) -> BandMember:
    """Make one member the band's sole event manager. Does not commit."""
    member = get_member(session, band_id, user_id)
    if not member:
        raise LookupError("Member not found")
    others = session.exec(
        select(BandMember).where(
            BandMember.band_id == band_id,
            BandMember.user_id != user_id,
            BandMember.is_event_manager == True,  # noqa: E712
        )
    ).all()
    for other in others:
        other.is_event_manager = False
        session.add(other)
    member.is_event_manager = True
    session.add(member)
    return member


def update_member(session: Session, band_id: int, user_id: int, changes: dict) -> BandMember:
    member = get_member(session, band_id, user_id)
    if not member:
        raise LookupError("Member not found")

    if changes.get("is_admin") is False and member.is_admin and _admin_count(session, band_id) <= 1:
        raise ValueError("Cannot remove the last admin of the band")

    if changes.get("is_event_manager"):
        set_event_manager(session, band_id, user_id)
    for field, value in changes.items():
        if value is not None and field != "is_event_manager":
            setattr(member, field, value)
    if changes.get("is_event_manager") is False:
        member.is_event_manager = False

    session.add(member)
    session.commit()
    session.refresh(member)
    return member


def _admin_count(session: Session, band_id: int) -> int:
    return _count(
        session,
        select(func.count(BandMember.id)).where(
            BandMember.band_id == band_id, BandMember.is_admin == True  # noqa: E712
        ),
    )


def remove_member(session: Session, band_id: int, user_id: int) -> None:
    member = get_member(session, band_id, user_id)
    if not member:
        raise LookupError("Member not found")
    if member.is_admin and _admin_count(session, band_id) <= 1:
        raise ValueError("Cannot remove the last admin of the band")
    session.delete(member)
    session.commit()


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------


def _has_pending(session: Session, band_id: int, user_id: int) -> bool:
    now = datetime.utcnow()
    return (
        session.exec(
            select(BandInvitation).where(
                BandInvitation.band_id == band_id,
                BandInvitation.invited_user_id == user_id,
                BandInvitation.status == "pending",
                BandInvitation.expires_at > now,
            )
        ).first()
        is not None
    )


def search_users(session: Session, band_id: int, q: str) -> List[dict]:
    """Up to SEARCH_LIMIT non-members whose name, email or phone contains `q`."""
    member_ids = select(BandMember.user_id).where(BandMember.band_id == band_id)
    pattern = f"%{q.strip()}%"
    users = session.exec(
        select(User)
        .where(
            User.id.not_in(member_ids),
            or_(col(User.name).ilike(pattern), col(User.email).ilike(pattern), col(User.phone).ilike(pattern)),
        )
        .order_by(User.name)
        .limit(SEARCH_LIMIT)
    ).all()
    return [
        {
            "id": u.id,
            "name": u.name,
            "email": u.email,
            "phone": u.phone,
            "has_pending_invitation": _has_pending(session, band_id, u.id),
        }
        for u in users
    ]


def invite_user(session: Session, band_id: int, invited_by: int, invited_user_id: int) -> BandInvitation:
    if not session.get(User, invited_user_id):
        raise LookupError("User not found")
    if get_member(session, band_id, invited_user_id):
        raise ValueError("User is already a member of this band")
    if _has_pending(session, band_id, invited_user_id):
        raise ValueError("User already has a pending invitation to this band")

    pending_total = _count(
        session,
        select(func.count(BandInvitation.id)).where(
            BandInvitation.invited_user_id == invited_user_id,
            BandInvitation.status == "pending",
            BandInvitation.expires_at > datetime.utcnow(),
        ),
    )
    if pending_total >= MAX_PENDING_INVITATIONS:
        raise ValueError("User has too many pending invitations")

    invitation = BandInvitation(
        band_id=band_id,
        invited_user_id=invited_user_id,
        invited_by=invited_by,
        status="pending",
        expires_at=datetime.utcnow() + timedelta(days=INVITATION_TTL_DAYS),
    )
    session.add(invitation)
    session.commit()
    session.refresh(invitation)
    return invitation


def pending_invitations(session: Session, user_id: int) -> List[dict]:
    rows = session.exec(
        select(BandInvitation, Band, User)
        .join(Band, Band.id == BandInvitation.band_id)
        .join(User, User.id == BandInvitation.invited_by)
        .where(
            BandInvitation.invited_user_id == user_id,
            BandInvitation.status == "pending",
            BandInvitation.expires_at > datetime.utcnow(),
        )
        .order_by(col(BandInvitation.created_at).desc(), col(BandInvitation.id).desc())
    ).all()
    return [
        {
            **serialize_invitation(invitation),
            "band": {"id": band.id, "name": band.name},
            "inviter": {"id": inviter.id, "name": inviter.name},
        }
        for invitation, band, inviter in rows
    ]


def serialize_invitation(invitation: BandInvitation) -> dict:
    return {
        "id": invitation.id,
        "band_id": invitation.band_id,
        "invited_user_id": invitation.invited_user_id,
        "invited_by": invitation.invited_by,
        "status": invitation.status,
        "expires_at": invitation.expires_at.isoformat(),
        "created_at": invitation.created_at.isoformat(),
        "responded_at": invitation.responded_at.isoformat() if invitation.responded_at else None,
    }


def _open_invitation(session: Session, invitation_id: int, user_id: int) -> BandInvitation:
    invitation = session.get(BandInvitation, invitation_id)
    if not invitation:
        raise LookupError("Invitation not found")
    if invitation.invited_user_id != user_id:
        raise PermissionError("This invitation is not for you")
    if invitation.status != "pending":
        raise ValueError("Invitation is no longer pending")
    if invitation.expires_at < datetime.utcnow():
        invitation.status = "expired"
        session.add(invitation)
        session.commit()
        raise ValueError("Invitation has expired")
    return invitation


def accept_invitation(session: Session, invitation_id: int, user_id: int) -> BandMember:
    invitation = _open_invitation(session, invitation_id, user_id)
    if get_member(session, invitation.band_id, user_id):
        raise ValueError("User is already a member of this band")

    member = BandMember(
        user_id=user_id,
        band_id=invitation.band_id,
        role=BAND_MEMBER_ROLE,
        active=True,
        is_admin=False,
        is_event_manager=False,
    )
    invitation.status = "accepted"
    invitation.responded_at = datetime.utcnow()
    session.add(member)
    session.add(invitation)
    session.commit()
    session.refresh(member)
    return member


def reject_invitation(session: Session, invitation_id: int, user_id: int) -> BandInvitation:
    invitation = _open_invitation(session, invitation_id, user_id)
    invitation.status = "rejected"
    invitation.responded_at = datetime.utcnow()
    session.add(invitation)
    session.commit()
    session.refresh(invitation)
    return invitation
