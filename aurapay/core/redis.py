"""Redis 客户端配置模块"""

import os
from redis import Redis
from redis.asyncio import Redis as AsyncRedis

# 统一的 Redis 配置
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_DB = int(os.getenv("REDIS_DB", "0"))
REDIS_URL = f"redis://{REDIS_HOST}:{REDIS_PORT}/{REDIS_DB}"

# 库存缓存过期时间（秒）
STOCK_CACHE_TTL = 300

# 基础 Redis 客户端
redis_client = Redis.from_url(REDIS_URL, decode_responses=True)
async_redis = AsyncRedis.from_url(REDIS_URL, decode_responses=True)


def stock_cache_key(product_id: int) -> str:
    """商品可用库存的缓存键"""
    return f"stock:available:{product_id}"


# 导出
__all__ = [
    "redis_client",
    "async_redis",
    "stock_cache_key",
    "STOCK_CACHE_TTL",
    "REDIS_URL"
]
