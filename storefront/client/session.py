"""客户端会话：Token 与用户资料缓存

会话只在进程边界（启动/退出）通过 JSON 文件加载与保存，
运行期间由调用方显式传递。
"""

import json
import logging
import os
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ClientSession:
    """持有访问令牌和已缓存的用户资料"""

    def __init__(self, token: Optional[str] = None, user: Optional[Dict[str, Any]] = None):
        self.token = token
        self.user = user

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def clear(self) -> None:
        """清空令牌和资料缓存"""
        self.token = None
        self.user = None

    def invalidate_profile(self) -> None:
        self.user = None

    def to_dict(self) -> Dict[str, Any]:
        return {"token": self.token, "user": self.user}

    def save(self, path: str) -> None:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f)
        logger.debug(f"Session saved to {path}")

    @classmethod
    def load(cls, path: str) -> "ClientSession":
        """从文件加载会话；文件不存在或损坏时返回空会话"""
        if not os.path.exists(path):
            return cls()
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load session from {path}: {e}")
            return cls()
        return cls(token=data.get("token"), user=data.get("user"))
