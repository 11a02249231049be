"""当前用户信息路由（Token 签发不在本服务内）"""

import logging

from fastapi import APIRouter, Body, Depends, HTTPException

from storefront.core.dependencies import get_user_service
from storefront.core.security import Principal, get_current_principal
from storefront.errors import StoreError
from storefront.schemas.user import UpdateProfileRequest, UserResponse, UserSchema
from storefront.services.user_service import UserService

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/auth",
    tags=["鉴权"],
    responses={
        401: {"description": "未登录"},
        404: {"description": "用户不存在"},
        500: {"description": "服务器内部错误"}
    }
)


@router.get("/me", response_model=UserResponse, summary="当前用户")
async def me(
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    user = service.get_user(principal.user_id)
    return {"success": True, "user": UserSchema.model_validate(user)}


@router.put(
    "/profile",
    response_model=UserResponse,
    summary="修改资料",
    description="修改姓名、电话与默认收货地址；未提供的字段保持不变。默认收货地址用于未指定地址的订单。",
)
async def update_profile(
    request: UpdateProfileRequest = Body(...),
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    try:
        changes = request.model_dump(exclude_unset=True)
        user = service.update_profile(principal.user_id, changes)
        return {
            "success": True,
            "message": "Profile updated successfully",
            "user": UserSchema.model_validate(user),
        }
    except StoreError:
        raise
    except Exception as e:
        logger.error(f"更新资料失败: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error updating profile")
