from typing import Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from storefront.schemas.common import BaseResponse


class UserSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    email: str
    phone: Optional[str] = None
    address: Dict[str, Optional[str]] = {}
    is_admin: bool


class UserResponse(BaseResponse):
    user: UserSchema


class ProfileAddress(BaseModel):
    """默认收货地址，未提供的字段保持原值"""
    street: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=128)
    state: Optional[str] = Field(None, max_length=128)
    pincode: Optional[str] = Field(
        None,
        max_length=16,
        validation_alias=AliasChoices("pincode", "zipCode", "zip_code"),
    )
    country: Optional[str] = Field(None, max_length=64)


class UpdateProfileRequest(BaseModel):
    """修改资料请求"""
    full_name: Optional[str] = Field(
        None,
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("full_name", "fullName", "name"),
        description="用户姓名",
    )
    phone: Optional[str] = Field(None, max_length=32, description="手机号")
    address: Optional[ProfileAddress] = Field(None, description="默认收货地址")
