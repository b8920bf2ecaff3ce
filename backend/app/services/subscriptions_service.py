"""Band subscriptions and plan limit checks."""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlmodel import Session, func, select

from app.models.band import BandMember
from app.models.event import Event
from app.models.song import Song
from app.models.subscription import (
    TRIAL_PLAN_NAME,
    UNLIMITED,
    USABLE_STATUSES,
    BandSubscription,
    SubscriptionPlan,
)

logger = logging.getLogger(__name__)

EXISTING_BAND_TRIAL_DAYS = 30

RESOURCES = ("members", "songs", "events_per_month")

LIMIT_MESSAGES = {
    "members": "Has alcanzado el límite de miembros de tu plan. Actualiza tu suscripción para agregar más.",
    "songs": "Has alcanzado el límite de canciones de tu plan. Actualiza tu suscripción para agregar más.",
    "events_per_month": (
        "Has alcanzado el límite de eventos del mes según tu plan. "
        "Actualiza tu suscripción para crear más eventos."
    ),
}


def create_trial_subscription(session: Session, band_id: int, existing_band: bool = False) -> BandSubscription:
    """
    Start a trial for a band.

    New bands get the trial plan's duration; bands that predate subscriptions
    get EXISTING_BAND_TRIAL_DAYS. Does not commit.
    """
    plan = session.exec(select(SubscriptionPlan).where(SubscriptionPlan.name == TRIAL_PLAN_NAME)).first()
    if not plan:
        raise ValueError("Trial plan is not configured")

    start = datetime.utcnow()
    days = EXISTING_BAND_TRIAL_DAYS if existing_band else plan.duration_days
    subscription = BandSubscription(
        band_id=band_id,
        plan_id=plan.id,
        status="TRIAL",
        current_period_start=start,
        current_period_end=start + timedelta(days=days),
    )
    session.add(subscription)
    return subscription


def get_subscription_by_band_id(session: Session, band_id: int) -> Optional[BandSubscription]:
    """
    Fetch a band's subscription. A TRIAL or ACTIVE subscription past its period
    end is reported (not persisted) as EXPIRED.
    """
    subscription = session.exec(select(BandSubscription).where(BandSubscription.band_id == band_id)).first()
    if not subscription:
        return None

    if subscription.status in ("TRIAL", "ACTIVE") and subscription.current_period_end < datetime.utcnow():
        session.expunge(subscription)
        subscription.status = "EXPIRED"
    return subscription


def _month_bounds(now: datetime):
    start = datetime(now.year, now.month, 1)
    if now.month == 12:
        end = datetime(now.year + 1, 1, 1)
    else:
        end = datetime(now.year, now.month + 1, 1)
    return start, end


def count_resource(session: Session, band_id: int, resource: str) -> int:
    if resource == "members":
        query = select(func.count(BandMember.id)).where(BandMember.band_id == band_id)
    elif resource == "songs":
        query = select(func.count(Song.id)).where(Song.band_id == band_id)
    elif resource == "events_per_month":
        start, end = _month_bounds(datetime.utcnow())
        query = select(func.count(Event.id)).where(Event.band_id == band_id, Event.date >= start, Event.date < end)
    else:
        raise ValueError(f"Unknown resource: {resource}")
    return session.exec(query).one()


def _plan_limit(plan: SubscriptionPlan, resource: str) -> int:
    return {
        "members": plan.max_members,
        "songs": plan.max_songs,
        "events_per_month": plan.max_events_per_month,
    }[resource]


def check_plan_limits(session: Session, band_id: int, resource: str) -> dict:
    """
    Check whether a band may add one more `resource`.

    Returns:
        dict with keys allowed, current, limit, message
    """
    if resource not in RESOURCES:
        raise ValueError(f"Unknown resource: {resource}")

    current = count_resource(session, band_id, resource)
    subscription = get_subscription_by_band_id(session, band_id)
    if not subscription or subscription.status not in USABLE_STATUSES:
        return {
            "allowed": False,
            "current": current,
            "limit": 0,
            "message": "La banda no tiene una suscripción activa.",
        }

    plan = session.get(SubscriptionPlan, subscription.plan_id)
    limit = _plan_limit(plan, resource)
    allowed = limit == UNLIMITED or current < limit
    return {
        "allowed": allowed,
        "current": current,
        "limit": limit,
        "message": None if allowed else LIMIT_MESSAGES[resource],
    }


def cancel_subscription(session: Session, band_id: int) -> BandSubscription:
    subscription = session.exec(select(BandSubscription).where(BandSubscription.band_id == band_id)).first()
    if not subscription:
        raise ValueError("Subscription not found")
    subscription.status = "CANCELLED"
    session.add(subscription)
    session.commit()
    session.refresh(subscription)
    logger.info(f"Subscription for band {band_id} cancelled")
    return subscription


def change_plan(session: Session, band_id: int, plan_id: int) -> BandSubscription:
    """Move a band to another plan and start a fresh ACTIVE period."""
    plan = session.get(SubscriptionPlan, plan_id)
    if not plan or not plan.is_active:
        raise ValueError("Plan not found")

    subscription = session.exec(select(BandSubscription).where(BandSubscription.band_id == band_id)).first()
    start = datetime.utcnow()
    if not subscription:
        subscription = BandSubscription(band_id=band_id, plan_id=plan.id, current_period_end=start)
    subscription.plan_id = plan.id
    subscription.status = "ACTIVE"
    subscription.current_period_start = start
    subscription.current_period_end = start + timedelta(days=plan.duration_days)
    subscription.cancel_at_period_end = False
    session.add(subscription)
    session.commit()
    session.refresh(subscription)
    return subscription
