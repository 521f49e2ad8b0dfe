import json
from typing import Optional
from portal_api.core.redis import get_redis
from portal_api.core.config import settings


def _key(scope: str, key: str) -> str:
    return f"idemp:{scope}:{key}"


async def get_idempotent(scope: str, key: Optional[str]):
    if not key:
        return None
    redis = get_redis()
    v = await redis.get(_key(scope, key))
    return json.loads(v) if v else None


async def set_idempotent(scope: str, key: str, value: dict):
    redis = get_redis()
    await redis.set(_key(scope, key), json.dumps(value, default=str), ex=settings.IDEMPOTENCY_TTL)
