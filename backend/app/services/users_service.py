"""User lookups, activation and the session payload embedded in access tokens."""

import logging
from typing import List, Optional

from sqlmodel import Session, select

from app.models.band import Band, BandMember
from app.models.church import Church, ChurchMemberRole, ChurchRole, Membership
from app.models.user import USER_ROLE_ID, User, UserRole
from app.services.jwt_service import generate_tokens
from app.services.passwords import hash_password

logger = logging.getLogger(__name__)


def find_by_phone(session: Session, phone: str) -> Optional[User]:
    return session.exec(select(User).where(User.phone == phone)).first()


def find_by_email(session: Session, email: str) -> Optional[User]:
    return session.exec(select(User).where(User.email == email)).first()


def get_role_ids(session: Session, user_id: int) -> List[int]:
    return list(session.exec(select(UserRole.role_id).where(UserRole.user_id == user_id).order_by(UserRole.role_id)).all())


def add_role(session: Session, user_id: int, role_id: int) -> bool:
    """Grant an app role. Returns False when the user already holds it."""
    if session.get(UserRole, (user_id, role_id)):
        return False
    session.add(UserRole(user_id=user_id, role_id=role_id))
    session.commit()
    return True


def remove_role(session: Session, user_id: int, role_id: int) -> bool:
    link = session.get(UserRole, (user_id, role_id))
    if not link:
        return False
    session.delete(link)
    session.commit()
    return True


def activate_user(session: Session, user: User) -> User:
    """Mark the user active and grant the base `user` role."""
    user.status = "active"
    session.add(user)
    session.commit()
    add_role(session, user.id, USER_ROLE_ID)
    session.refresh(user)
    logger.info(f"User {user.id} activated")
    return user


def activate_user_by_phone(session: Session, phone: str) -> Optional[User]:
    user = find_by_phone(session, phone)
    if user:
        activate_user(session, user)
    return user


def update_password(session: Session, user: User, password: str) -> User:
    user.password = hash_password(password)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def get_active_memberships(session: Session, user_id: int) -> List[dict]:
    rows = session.exec(
        select(Membership, Church)
        .join(Church, Church.id == Membership.church_id)
        .where(Membership.user_id == user_id, Membership.active == True)  # noqa: E712
    ).all()

    memberships = []
    for membership, church in rows:
        roles = session.exec(
            select(ChurchMemberRole, ChurchRole)
            .join(ChurchRole, ChurchRole.id == ChurchMemberRole.role_id)
            .where(ChurchMemberRole.membership_id == membership.id, ChurchMemberRole.active == True)  # noqa: E712
        ).all()
        memberships.append(
            {
                "id": membership.id,
                "church": {"id": church.id, "name": church.name},
                "roles": [
                    {"id": member_role.id, "name": role.name, "church_role_id": role.id}
                    for member_role, role in roles
                ],
                "since": membership.member_since.isoformat(),
            }
        )
    return memberships


def get_active_band_memberships(session: Session, user_id: int) -> List[dict]:
    rows = session.exec(
        select(BandMember, Band)
        .join(Band, Band.id == BandMember.band_id)
        .where(BandMember.user_id == user_id, BandMember.active == True)  # noqa: E712
    ).all()
    return [
        {
            "id": member.id,
            "role": member.role,
            "is_admin": member.is_admin,
            "is_event_manager": member.is_event_manager,
            "band": {"id": band.id, "name": band.name},
        }
        for member, band in rows
    ]


def serialize_user(session: Session, user: User) -> dict:
    """Public view of a user: no password or refresh token, roles as ids."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "phone": user.phone,
        "birthdate": user.birthdate.isoformat() if user.birthdate else None,
        "status": user.status,
        "roles": get_role_ids(session, user.id),
        "memberships": get_active_memberships(session, user.id),
        "members_of_bands": get_active_band_memberships(session, user.id),
        "created_at": user.created_at.isoformat(),
        "updated_at": user.updated_at.isoformat(),
    }


def build_user_payload(session: Session, user: User) -> dict:
    """Claims for a freshly issued access token."""
    return {
        "sub": user.id,
        "email": user.email,
        "name": user.name,
        "roles": get_role_ids(session, user.id),
        "memberships": get_active_memberships(session, user.id),
        "members_of_bands": get_active_band_memberships(session, user.id),
    }


def issue_tokens(session: Session, user: User) -> tuple:
    """Generate a token pair from current DB state and store the refresh token."""
    access_token, refresh_token = generate_tokens(build_user_payload(session, user))
    user.refresh_token = refresh_token
    session.add(user)
    session.commit()
    session.refresh(user)
    return access_token, refresh_token
