from app.models.band import Band, BandInvitation, BandMember
from app.models.church import Church, ChurchMemberRole, ChurchRole, Membership
from app.models.event import Event, EventSong
from app.models.song import Chord, Lyric, Song, SongStructure
from app.models.subscription import BandSubscription, SubscriptionPlan
from app.models.temporal_token import TemporalToken
from app.models.user import Role, User, UserRole

__all__ = [
    "User",
    "Role",
    "UserRole",
    "Church",
    "ChurchRole",
    "Membership",
    "ChurchMemberRole",
    "Band",
    "BandMember",
    "BandInvitation",
    "SongStructure",
    "Song",
    "Lyric",
    "Chord",
    "Event",
    "EventSong",
    "TemporalToken",
    "SubscriptionPlan",
    "BandSubscription",
]
