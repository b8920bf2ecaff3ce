"""
Route permission dependencies.

Every check is a dependency factory used as ``Depends(check_...(...))``.
Anonymous requests are rejected with 401 before any 403 check runs:

- check_login_status: public / notLoggedIn / loggedIn
- app_role: any of the given application roles
- check_user_id: path user id must be the caller
- check_church: caller belongs to the church (optionally with a church role)
- check_user_member_of_band / check_band_admin: band membership and admin flag
- check_plan_limit: band subscription allows one more resource

Identity comes from the access token; church and band membership are read
from the database so changes apply without re-issuing tokens.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session, select

from app.database import get_session
from app.models.band import BandMember
from app.models.church import ChurchMemberRole, Membership
from app.models.user import ADMIN_ROLE_ID
from app.services import subscriptions_service
from app.services.jwt_service import InvalidTokenError, verify_access_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

PUBLIC = "public"
LOGGED_IN = "loggedIn"
NOT_LOGGED_IN = "notLoggedIn"

PARAM = "param"
BODY = "body"


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[Dict[str, Any]]:
    """Decoded access token payload, or None. Never rejects the request."""
    if credentials is None:
        return None
    try:
        return verify_access_token(credentials.credentials)
    except InvalidTokenError:
        return None


def check_login_status(required: str):
    if required not in (PUBLIC, LOGGED_IN, NOT_LOGGED_IN):
        raise ValueError(f"Unknown login status: {required}")

    def _dependency(user: Optional[dict] = Depends(get_current_user)) -> Optional[dict]:
        if required == PUBLIC:
            return user
        if required == NOT_LOGGED_IN:
            if user is not None:
                raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is already logged in.")
            return None
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="No JWT token provided or invalid",
                headers={"WWW-Authenticate": "Bearer"},
            )
        return user

    return _dependency


require_user = check_login_status(LOGGED_IN)
optional_user = check_login_status(PUBLIC)
require_anonymous = check_login_status(NOT_LOGGED_IN)


def current_user_id(user: dict) -> int:
    return int(user["sub"])


def is_system_admin(user: dict) -> bool:
    return ADMIN_ROLE_ID in (user.get("roles") or [])


def app_role(*role_ids: int):
    """Require any one of the given application role ids."""

    def _dependency(user: dict = Depends(require_user)) -> dict:
        roles = user.get("roles") or []
        if not any(role in roles for role in role_ids):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return user

    return _dependency


require_admin = app_role(ADMIN_ROLE_ID)


def check_user_id(param: str = "user_id"):
    """The `param` path parameter must be the caller's own user id."""

    def _dependency(request: Request, user: dict = Depends(require_user)) -> dict:
        value = request.path_params.get(param)
        if value is None or str(value) != str(user["sub"]):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You are not allowed to access this resource",
            )
        return user

    return _dependency


async def _resolve_id(request: Request, source: str, key: str) -> Optional[int]:
    if source == PARAM:
        raw = request.path_params.get(key)
    else:
        try:
            body = await request.json()
        except ValueError:
            body = None
        raw = body.get(key) if isinstance(body, dict) else None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def check_church(
    check_by: str,
    key: str,
    church_roles_bypass: Optional[Iterable[int]] = None,
    church_role_strict: bool = False,
):
    """
    The caller must hold an active membership in the target church.

    check_by:
        "membership" - church taken from the membership in path param `key`
        "param"      - church id in path param `key`
        "body"       - church id in JSON body field `key`

    When `church_roles_bypass` lists church role ids, holding one of them
    passes immediately; without one, `church_role_strict` turns that into 403.
    """
    bypass = list(church_roles_bypass or [])

    async def _dependency(
        request: Request,
        user: dict = Depends(require_user),
        session: Session = Depends(get_session),
    ) -> dict:
        user_id = current_user_id(user)
        memberships = session.exec(
            select(Membership).where(Membership.user_id == user_id, Membership.active == True)  # noqa: E712
        ).all()
        if not memberships:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User does not have memberships.")

        if check_by == "membership":
            membership_id = await _resolve_id(request, PARAM, key)
            target = session.get(Membership, membership_id) if membership_id is not None else None
            if not target:
                raise HTTPException(status_code=404, detail="Membership not found")
            church_id = target.church_id
        else:
            church_id = await _resolve_id(request, check_by, key)

        own = next((m for m in memberships if m.church_id == church_id), None)
        if own is None:
            logger.info(f"User {user_id} denied access to church {church_id}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Church does not belong to the user authenticated.",
            )

        if bypass:
            role_ids = session.exec(
                select(ChurchMemberRole.role_id).where(
                    ChurchMemberRole.membership_id == own.id,
                    ChurchMemberRole.active == True,  # noqa: E712
                )
            ).all()
            if not any(role in role_ids for role in bypass) and church_role_strict:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="User does not have the required role in the church.",
                )
        return user

    return _dependency


def _band_membership(session: Session, user_id: int, band_id: Optional[int]) -> Optional[BandMember]:
    if band_id is None:
        return None
    return session.exec(
        select(BandMember).where(
            BandMember.user_id == user_id,
            BandMember.band_id == band_id,
            BandMember.active == True,  # noqa: E712
        )
    ).first()


def check_user_member_of_band(check_by: str = PARAM, key: str = "band_id", is_admin: bool = False):
    """The caller must be an active member (and with `is_admin`, an admin) of the band."""

    async def _dependency(
        request: Request,
        user: dict = Depends(require_user),
        session: Session = Depends(get_session),
    ) -> dict:
        band_id = await _resolve_id(request, check_by, key)
        member = _band_membership(session, current_user_id(user), band_id)
        if member is None:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is not a member of the band.")
        if is_admin and not member.is_admin:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is not an admin of the band.")
        return user

    return _dependency


def check_band_admin(check_by: str = PARAM, key: str = "band_id"):
    """Band admins pass; system admins bypass the check entirely."""

    async def _dependency(
        request: Request,
        user: dict = Depends(require_user),
        session: Session = Depends(get_session),
    ) -> dict:
        if is_system_admin(user):
            return user
        band_id = await _resolve_id(request, check_by, key)
        member = _band_membership(session, current_user_id(user), band_id)
        if member is None:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is not a member of the band.")
        if not member.is_admin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only band administrators can perform this action.",
            )
        return user

    return _dependency


def check_plan_limit(resource: str, check_by: str = PARAM, key: str = "band_id"):
    """Reject with 403 when the band's subscription does not allow one more `resource`."""

    async def _dependency(request: Request, session: Session = Depends(get_session)) -> None:
        band_id = await _resolve_id(request, check_by, key)
        if band_id is None:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Subscription verification failed: No band id provided in params or body",
            )
        result = subscriptions_service.check_plan_limits(session, band_id, resource)
        if not result["allowed"]:
            logger.info(f"Band {band_id} blocked by plan limit on {resource}: {result['current']}/{result['limit']}")
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=result["message"])

    return _dependency
