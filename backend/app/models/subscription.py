from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

UNLIMITED = -1

TRIAL_PLAN_NAME = "Trial"

# (name, price, duration_days, max_members, max_songs, max_events_per_month, max_people_per_event)
DEFAULT_SUBSCRIPTION_PLANS = [
    (TRIAL_PLAN_NAME, 0, 15, 5, 30, 4, 5),
    ("Basic", 5, 30, 10, 100, 8, 10),
    ("Professional", 12, 30, 25, 500, 20, 25),
    ("Premium", 25, 30, UNLIMITED, UNLIMITED, UNLIMITED, UNLIMITED),
]

SUBSCRIPTION_STATUSES = ("TRIAL", "ACTIVE", "GRACE_PERIOD", "EXPIRED", "CANCELLED")
USABLE_STATUSES = ("TRIAL", "ACTIVE", "GRACE_PERIOD")


class SubscriptionPlan(SQLModel, table=True):
    __tablename__ = "subscription_plan"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True)
    price: float = Field(default=0)
    duration_days: int = Field(default=30)
    max_members: int
    max_songs: int
    max_events_per_month: int
    max_people_per_event: int
    is_active: bool = Field(default=True)


class BandSubscription(SQLModel, table=True):
    __tablename__ = "band_subscription"

    id: Optional[int] = Field(default=None, primary_key=True)
    band_id: int = Field(foreign_key="band.id", unique=True)
    plan_id: int = Field(foreign_key="subscription_plan.id")
    status: str = Field(default="TRIAL")  # TRIAL|ACTIVE|GRACE_PERIOD|EXPIRED|CANCELLED
    current_period_start: datetime = Field(default_factory=datetime.utcnow)
    current_period_end: datetime
    cancel_at_period_end: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow)
