"""Tests for subscription plans, band subscriptions and plan limits"""

from datetime import datetime, timedelta

from fastapi.testclient import TestClient
from sqlmodel import Session, select

from app.models.band import Band
from app.models.subscription import BandSubscription, SubscriptionPlan
from app.services import subscriptions_service


def _subscription(session: Session, band_id: int) -> BandSubscription:
    return session.exec(select(BandSubscription).where(BandSubscription.band_id == band_id)).one()


def test_list_plans(client: TestClient):
    response = client.get("/api/subscriptions/plans")
    assert response.status_code == 200
    plans = {p["name"]: p for p in response.json()}
    assert set(plans) == {"Trial", "Basic", "Professional", "Premium"}
    assert plans["Trial"]["duration_days"] == 15
    assert plans["Trial"]["max_members"] == 5
    assert plans["Basic"]["max_songs"] == 100
    assert plans["Professional"]["max_events_per_month"] == 20
    assert plans["Premium"]["max_people_per_event"] == -1


def test_get_band_subscription(client: TestClient, band, user_headers):
    response = client.get(f"/api/subscriptions/bands/{band['id']}", headers=user_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "TRIAL"
    assert data["plan"]["name"] == "Trial"


def test_get_band_subscription_requires_membership(client: TestClient, band, make_user, auth_headers):
    response = client.get(f"/api/subscriptions/bands/{band['id']}", headers=auth_headers(make_user()))
    assert response.status_code == 403


def test_expired_trial_is_reported_not_persisted(client: TestClient, session: Session, band, user_headers):
    subscription = _subscription(session, band["id"])
    subscription.current_period_end = datetime.utcnow() - timedelta(days=1)
    session.add(subscription)
    session.commit()

    response = client.get(f"/api/subscriptions/bands/{band['id']}", headers=user_headers)
    assert response.json()["status"] == "EXPIRED"

    session.expire_all()
    assert _subscription(session, band["id"]).status == "TRIAL"


def test_expired_subscription_blocks_resources(client: TestClient, session: Session, band, user_headers):
    subscription = _subscription(session, band["id"])
    subscription.current_period_end = datetime.utcnow() - timedelta(days=1)
    session.add(subscription)
    session.commit()

    response = client.post(f"/api/bands/{band['id']}/songs", json={"title": "X"}, headers=user_headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "La banda no tiene una suscripción activa."


def test_limits_endpoint(client: TestClient, band, user_headers):
    response = client.get(f"/api/subscriptions/bands/{band['id']}/limits/members", headers=user_headers)
    assert response.status_code == 200
    assert response.json() == {"resource": "members", "allowed": True, "current": 1, "limit": 5, "message": None}

    response = client.get(f"/api/subscriptions/bands/{band['id']}/limits/unknown", headers=user_headers)
    assert response.status_code == 422


def test_cancel_subscription_band_admin_only(client: TestClient, session: Session, band, make_user, auth_headers, user_headers):
    outsider_headers = auth_headers(make_user())
    assert client.post(f"/api/subscriptions/bands/{band['id']}/cancel", headers=outsider_headers).status_code == 403

    response = client.post(f"/api/subscriptions/bands/{band['id']}/cancel", headers=user_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "CANCELLED"

    result = subscriptions_service.check_plan_limits(session, band["id"], "songs")
    assert result["allowed"] is False


def test_change_plan_system_admin_only(client: TestClient, session: Session, band, user_headers, admin_headers):
    premium = session.exec(select(SubscriptionPlan).where(SubscriptionPlan.name == "Premium")).one()
    url = f"/api/subscriptions/bands/{band['id']}/change-plan"

    assert client.post(url, json={"plan_id": premium.id}, headers=user_headers).status_code == 403

    response = client.post(url, json={"plan_id": premium.id}, headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ACTIVE"
    assert data["plan"]["name"] == "Premium"

    assert client.post(url, json={"plan_id": 999}, headers=admin_headers).status_code == 404


def test_unlimited_plan_allows_everything(session: Session, user):
    band = Band(name="Grande", created_by=user.id)
    session.add(band)
    session.commit()
    premium = session.exec(select(SubscriptionPlan).where(SubscriptionPlan.name == "Premium")).one()
    subscriptions_service.change_plan(session, band.id, premium.id)

    result = subscriptions_service.check_plan_limits(session, band.id, "members")
    assert result == {"allowed": True, "current": 0, "limit": -1, "message": None}


def test_trial_for_existing_band_lasts_30_days(session: Session, user):
    band = Band(name="Antigua", created_by=user.id)
    session.add(band)
    session.commit()

    subscription = subscriptions_service.create_trial_subscription(session, band.id, existing_band=True)
    session.commit()
    assert (subscription.current_period_end - subscription.current_period_start).days == 30


def test_band_without_subscription_is_not_allowed(session: Session, user):
    band = Band(name="Sin plan", created_by=user.id)
    session.add(band)
    session.commit()

    result = subscriptions_service.check_plan_limits(session, band.id, "songs")
    assert result["allowed"] is False
    assert result["limit"] == 0
