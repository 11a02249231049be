"""Bearer Token 鉴权依赖

``Authorization: Bearer <jwt>`` 使用 JWT_SECRET 校验（HS256），
解析出用户后以 Principal 注入到路由。管理员身份以数据库中的
``users.is_admin`` 为准，Token 中的声明不能单独授予管理员权限。
"""

from typing import Optional
import logging

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from sqlalchemy.orm import Session

from storefront.core.config import settings
from storefront.db.session import get_db
from storefront.errors import ForbiddenError, UnauthenticatedError
from storefront.models.user import User

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class Principal(BaseModel):
    user_id: int
    is_admin: bool = False
    email: Optional[str] = None
    full_name: Optional[str] = None


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise UnauthenticatedError("Token expired")
    except jwt.InvalidTokenError:
        raise UnauthenticatedError("Invalid authentication token")


def _user_id_from_claims(claims: dict) -> int:
    raw = claims.get("sub") or claims.get("id") or claims.get("userId")
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise UnauthenticatedError("Invalid token payload")


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Principal:
    """Token 必填：校验并返回当前用户"""
    if not credentials or not credentials.credentials:
        raise UnauthenticatedError("Access token required")

    claims = decode_token(credentials.credentials)
    user_id = _user_id_from_claims(claims)

    user = db.get(User, user_id)
    if not user:
        logger.warning(f"Token 对应的用户不存在: user_id={user_id}")
        raise UnauthenticatedError("User not found")

    return Principal(
        user_id=user.id,
        is_admin=bool(user.is_admin),
        email=user.email,
        full_name=user.full_name,
    )


def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_admin:
        raise ForbiddenError()
    return principal
