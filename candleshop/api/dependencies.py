from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header

from ..data import user_repository
from ..errors import AuthorizationError
from ..models.shop_models import User


def get_current_user(x_user_id: Optional[str] = Header(default=None)) -> User:
    """Resolve the user the auth middleware put into the X-User-Id header."""
    if not x_user_id or not x_user_id.strip().isdigit():
        raise AuthorizationError("Not authenticated")
    user = user_repository.get_user(int(x_user_id.strip()))
    if user is None:
        raise AuthorizationError("Not authenticated")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise AuthorizationError("Admin access required", forbidden=True)
    return user
