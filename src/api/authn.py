from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, HTTPException

from src.config import get_settings
from src.security.web_auth import verify_web_access_token


def resolve_user_id_from_bearer(*, authorization: str | None) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="missing bearer token")
    token = authorization.removeprefix("Bearer ").strip()
    user_id = verify_web_access_token(token=token)
    if user_id is None:
        raise HTTPException(status_code=401, detail="invalid bearer token")
    return user_id


def require_user_id(
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    return resolve_user_id_from_bearer(authorization=authorization)


def optional_user_id(
    authorization: Annotated[str | None, Header()] = None,
) -> str | None:
    """Identity when a valid token is present; anonymous visitors get None."""
    if not authorization:
        return None
    user_id = verify_web_access_token(token=authorization.removeprefix("Bearer ").strip())
    return user_id


def require_admin(
    user_id: Annotated[str, Depends(require_user_id)],
) -> str:
    if user_id not in get_settings().admin_user_id_list():
        raise HTTPException(status_code=403, detail="admin access required")
    return user_id
