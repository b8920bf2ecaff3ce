"""Reference data inserted at startup when the tables are empty."""

import logging

from sqlmodel import Session, select

from app.models.church import DEFAULT_CHURCH_ROLES, ChurchRole
from app.models.song import DEFAULT_SONG_STRUCTURES, SongStructure
from app.models.subscription import DEFAULT_SUBSCRIPTION_PLANS, SubscriptionPlan
from app.models.user import DEFAULT_ROLES, Role

logger = logging.getLogger(__name__)


def _is_empty(session: Session, model) -> bool:
    return session.exec(select(model)).first() is None


def seed_reference_data(session: Session) -> None:
    if _is_empty(session, Role):
        for role_id, name in DEFAULT_ROLES:
            session.add(Role(id=role_id, name=name))
        logger.info("Initial roles created.")

    if _is_empty(session, ChurchRole):
        for name, description in DEFAULT_CHURCH_ROLES:
            session.add(ChurchRole(name=name, description=description))
        logger.info("Initial church roles created.")

    if _is_empty(session, SongStructure):
        for structure_id, title in DEFAULT_SONG_STRUCTURES:
            session.add(SongStructure(id=structure_id, title=title))
        logger.info("Initial song structures created.")

    if _is_empty(session, SubscriptionPlan):
        for name, price, days, members, songs, events, people in DEFAULT_SUBSCRIPTION_PLANS:
            session.add(
                SubscriptionPlan(
                    name=name,
                    price=price,
                    duration_days=days,
                    max_members=members,
                    max_songs=songs,
                    max_events_per_month=events,
                    max_people_per_event=people,
                )
            )
        logger.info("Initial subscription plans created.")

    session.commit()
