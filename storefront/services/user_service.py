"""用户资料服务"""

from sqlalchemy.orm import Session
import logging

from storefront.errors import NotFoundError
from storefront.models.user import User

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("full_name", "phone")
ADDRESS_FIELDS = ("street", "city", "state", "pincode", "country")


class UserService:
    """当前用户资料的查询与修改"""

    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def update_profile(self, user_id: int, changes: dict) -> User:
        """更新姓名、电话与默认收货地址

        只修改 changes 中出现的字段；地址为嵌套的 ``address`` 字典，
        同样按字段合并，未出现的地址字段保持原值。
        """
        user = self.get_user(user_id)

        updated = []
        for field in PROFILE_FIELDS:
            # 姓名不可为空，null 视为不修改
            if field in changes and not (field == "full_name" and changes[field] is None):
                setattr(user, field, changes[field])
                updated.append(field)
        for field in ADDRESS_FIELDS:
            if field in (changes.get("address") or {}):
                setattr(user, field, changes["address"][field])
                updated.append(field)

        try:
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"更新用户资料失败: user_id={user_id}, error={str(e)}")
            raise

        logger.info(f"用户资料已更新: user_id={user_id}, fields={updated}")
        return user
