from collections.abc import Callable
from json import JSONDecodeError
from typing import Any
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.core.db import get_session
from app.core.logging import get_logger
from app.models.user import User
from app.services.membership_service import shared_family_ids
from app.services.permission_service import FamilyPermission, get_membership, has_permissions

logger = get_logger("permissions")

FAMILY_ID_KEYS = ("family_id", "familyId")


def _is_member_route(request: Request) -> bool:
    route = request.scope.get("route")
    path = getattr(route, "path", None) or request.url.path
    return "/members/" in path and "/members/family/" not in path


def _first_value(source: Any) -> str | None:
    if not source:
        return None
    for key in FAMILY_ID_KEYS:
        value = source.get(key)
        if value:
            return str(value)
    return None


async def _body_family_id(request: Request) -> str | None:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except (JSONDecodeError, UnicodeDecodeError):
            return None
        return _first_value(body) if isinstance(body, dict) else None
    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        return _first_value(form)
    return None


async def resolve_family_id(
    request: Request,
    session: AsyncSession,
    user: User,
) -> UUID | None:
    target_member = request.path_params.get("member_id")
    if target_member and "family_id" not in request.path_params and _is_member_route(request):
        try:
            target_id = UUID(str(target_member))
        except ValueError:
            return None
        if not user.member_id:
            return None
        shared = await shared_family_ids(session, member_id=user.member_id, other_member_id=target_id)
        return shared[0] if shared else None

    raw = (
        _first_value(request.path_params)
        or await _body_family_id(request)
        or _first_value(request.query_params)
    )
    if not raw:
        return None
    try:
        return UUID(raw)
    except ValueError:
        return None


def require_permissions(*permissions: FamilyPermission) -> Callable[..., Any]:
    """Dependency guarding a route with every listed family permission."""

    async def dependency(
        request: Request,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session),
    ) -> User:
        if not current_user.member_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="User not authenticated",
            )
        family_id = await resolve_family_id(request, session, current_user)
        if family_id is None:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Family ID not found in request",
            )

        membership = await get_membership(session, member_id=current_user.member_id, family_id=family_id)
        if not membership or not await has_permissions(session, membership=membership, required=permissions):
            logger.info(
                "Denied %s for member %s in family %s",
                ",".join(permission.value for permission in permissions),
                current_user.member_id,
                family_id,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to perform this action",
            )
        return current_user

    return dependency
