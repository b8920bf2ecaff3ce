"""Tests for the route permission dependencies"""

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from sqlmodel import Session

from app.database import get_session
from app.models.church import Church, ChurchMemberRole, Membership
from app.models.user import EDITOR_ROLE_ID, MODERATOR_ROLE_ID
from app.utils.permissions import (
    BODY,
    app_role,
    check_band_admin,
    check_church,
    check_login_status,
    check_user_member_of_band,
)
from tests.conftest import override_get_session

guarded = FastAPI()


@guarded.get("/editors", dependencies=[Depends(app_role(MODERATOR_ROLE_ID, EDITOR_ROLE_ID))])
def editors_only():
    return {"ok": True}


@guarded.post("/church-body", dependencies=[Depends(check_church(BODY, "church_id"))])
def church_from_body(payload: dict):
    return {"ok": True}


@guarded.get("/churches/{church_id}/leaders", dependencies=[Depends(check_church("param", "church_id", [1], True))])
def church_leaders(church_id: int):
    return {"ok": True}


@guarded.get("/churches/{church_id}/soft", dependencies=[Depends(check_church("param", "church_id", [1], False))])
def church_soft(church_id: int):
    return {"ok": True}


@guarded.post("/band-body", dependencies=[Depends(check_user_member_of_band(BODY, "band_id"))])
def band_from_body(payload: dict):
    return {"ok": True}


@guarded.get("/bands/{band_id}/admin", dependencies=[Depends(check_band_admin())])
def band_admin(band_id: int):
    return {"ok": True}


@pytest.fixture
def guarded_client(session: Session):
    guarded.dependency_overrides[get_session] = override_get_session
    yield TestClient(guarded)
    guarded.dependency_overrides.clear()


@pytest.fixture
def church_membership(session: Session, user):
    church = Church(name="Iglesia", country="CR", address="Centro")
    session.add(church)
    session.commit()
    membership = Membership(user_id=user.id, church_id=church.id)
    session.add(membership)
    session.commit()
    session.refresh(church)
    session.refresh(membership)
    return church, membership


def test_unknown_login_status_is_rejected():
    with pytest.raises(ValueError):
        check_login_status("sometimes")


def test_anonymous_gets_401_before_403(guarded_client: TestClient):
    assert guarded_client.get("/editors").status_code == 401
    assert guarded_client.get("/bands/1/admin").status_code == 401


def test_app_role_accepts_any_listed_role(guarded_client: TestClient, make_user, auth_headers, user_headers):
    assert guarded_client.get("/editors", headers=user_headers).status_code == 403
    editor = make_user(roles=(EDITOR_ROLE_ID,))
    assert guarded_client.get("/editors", headers=auth_headers(editor)).status_code == 200


def test_check_church_from_body(guarded_client: TestClient, user_headers, church_membership):
    church, _ = church_membership
    assert guarded_client.post("/church-body", json={"church_id": church.id}, headers=user_headers).status_code == 200

    response = guarded_client.post("/church-body", json={"church_id": church.id + 1}, headers=user_headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "Church does not belong to the user authenticated."


def test_check_church_without_memberships(guarded_client: TestClient, user_headers):
    response = guarded_client.post("/church-body", json={"church_id": 1}, headers=user_headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "User does not have memberships."


def test_check_church_role_strict(guarded_client: TestClient, session: Session, user_headers, church_membership):
    church, membership = church_membership
    church_id = church.id

    response = guarded_client.get(f"/churches/{church_id}/leaders", headers=user_headers)
    assert response.status_code == 403
    assert guarded_client.get(f"/churches/{church_id}/soft", headers=user_headers).status_code == 200

    session.add(ChurchMemberRole(membership_id=membership.id, role_id=1))
    session.commit()
    assert guarded_client.get(f"/churches/{church_id}/leaders", headers=user_headers).status_code == 200


def test_band_membership_from_body(guarded_client: TestClient, band, user_headers, make_user, auth_headers):
    assert guarded_client.post("/band-body", json={"band_id": band["id"]}, headers=user_headers).status_code == 200
    assert guarded_client.post("/band-body", json={}, headers=user_headers).status_code == 403

    outsider = auth_headers(make_user())
    assert guarded_client.post("/band-body", json={"band_id": band["id"]}, headers=outsider).status_code == 403


def test_band_admin_and_system_admin(guarded_client: TestClient, band, user_headers, admin_headers, make_user, auth_headers):
    assert guarded_client.get(f"/bands/{band['id']}/admin", headers=user_headers).status_code == 200
    assert guarded_client.get(f"/bands/{band['id']}/admin", headers=admin_headers).status_code == 200
    moderator = make_user(roles=(MODERATOR_ROLE_ID,))
    assert guarded_client.get(f"/bands/{band['id']}/admin", headers=auth_headers(moderator)).status_code == 403
