from typing import List, Optional

from sqlalchemy import delete
from sqlalchemy.orm import selectinload
from sqlmodel import Session, select

from app.models.church import ChurchMemberRole, Membership


def get_memberships(session: Session, user_id: int, church_id: Optional[int] = None) -> List[Membership]:
    """A user's memberships (with church loaded), optionally limited to one church."""
    query = select(Membership).where(Membership.user_id == user_id).options(selectinload(Membership.church))
    if church_id is not None:
        query = query.where(Membership.church_id == church_id)
    return list(session.exec(query.order_by(Membership.id)).all())


def delete_membership(session: Session, membership: Membership) -> None:
    """Delete a membership together with its church role assignments."""
    session.execute(delete(ChurchMemberRole).where(ChurchMemberRole.membership_id == membership.id))
    session.delete(membership)
    session.commit()


def delete_church_memberships(session: Session, church_id: int) -> None:
    """Bulk-delete every membership of a church and their role assignments. Does not commit."""
    membership_ids = select(Membership.id).where(Membership.church_id == church_id)
    session.execute(delete(ChurchMemberRole).where(ChurchMemberRole.membership_id.in_(membership_ids)))
    session.execute(delete(Membership).where(Membership.church_id == church_id))
