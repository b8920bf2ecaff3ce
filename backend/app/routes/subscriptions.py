from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from sqlmodel import Session, select

from app.database import get_session
from app.models.subscription import SubscriptionPlan
from app.services import subscriptions_service
from app.utils.lookups import require_band
from app.utils.permissions import check_band_admin, check_user_member_of_band, require_admin

router = APIRouter(prefix="/subscriptions")


class PlanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: float
    duration_days: int
    max_members: int
    max_songs: int
    max_events_per_month: int
    max_people_per_event: int


class SubscriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    band_id: int
    plan_id: int
    status: str
    current_period_start: datetime
    current_period_end: datetime
    cancel_at_period_end: bool


class BandSubscriptionResponse(SubscriptionResponse):
    plan: PlanResponse


class LimitResponse(BaseModel):
    resource: str
    allowed: bool
    current: int
    limit: int
    message: Optional[str] = None


class ChangePlan(BaseModel):
    plan_id: int


def _with_plan(session: Session, subscription) -> BandSubscriptionResponse:
    plan = session.get(SubscriptionPlan, subscription.plan_id)
    return BandSubscriptionResponse(
        **SubscriptionResponse.model_validate(subscription).model_dump(),
        plan=PlanResponse.model_validate(plan),
    )


@router.get("/plans", response_model=List[PlanResponse])
def list_plans(session: Session = Depends(get_session)):
    return session.exec(
        select(SubscriptionPlan).where(SubscriptionPlan.is_active == True).order_by(SubscriptionPlan.price)  # noqa: E712
    ).all()


@router.get(
    "/bands/{band_id}",
    response_model=BandSubscriptionResponse,
    dependencies=[Depends(check_user_member_of_band())],
)
def get_band_subscription(band_id: int, session: Session = Depends(get_session)):
    subscription = subscriptions_service.get_subscription_by_band_id(session, band_id)
    if not subscription:
        raise HTTPException(status_code=404, detail="Subscription not found")
    return _with_plan(session, subscription)


@router.get(
    "/bands/{band_id}/limits/{resource}",
    response_model=LimitResponse,
    dependencies=[Depends(check_user_member_of_band())],
)
def get_band_limit(
    band_id: int,
    resource: Literal["members", "songs", "events_per_month"],
    session: Session = Depends(get_session),
):
    result = subscriptions_service.check_plan_limits(session, band_id, resource)
    return LimitResponse(resource=resource, **result)


@router.post(
    "/bands/{band_id}/cancel",
    response_model=SubscriptionResponse,
    dependencies=[Depends(check_band_admin())],
)
def cancel_band_subscription(band_id: int, session: Session = Depends(get_session)):
    try:
        return subscriptions_service.cancel_subscription(session, band_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post(
    "/bands/{band_id}/change-plan",
    response_model=BandSubscriptionResponse,
    dependencies=[Depends(require_admin)],
)
def change_band_plan(band_id: int, payload: ChangePlan, session: Session = Depends(get_session)):
    require_band(session, band_id)
    try:
        subscription = subscriptions_service.change_plan(session, band_id, payload.plan_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _with_plan(session, subscription)
