from .base import Base
from .session import engine


def init_db():
    """创建所有数据表"""
    import storefront.models  # noqa: F401  注册模型到 Base.metadata

    Base.metadata.create_all(bind=engine)


__all__ = ["Base", "engine", "init_db"]
