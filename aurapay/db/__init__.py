from .base import Base
from .session import engine
# db/init_db.py


def init_db():
    """创建所有数据表（开发环境使用）"""
    import aurapay.models  # noqa: F401 注册模型
    Base.metadata.create_all(bind=engine)

# Export for convenience
__all__ = ["Base", "engine", "init_db"]
