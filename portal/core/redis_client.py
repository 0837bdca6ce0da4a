import os
from typing import Optional

import redis.asyncio as redis

from portal.core.config import settings

REDIS_URL = os.environ.get("REDIS_URL", settings.redis_url)
redis_client: Optional[redis.Redis] = redis.from_url(REDIS_URL, decode_responses=True) if REDIS_URL else None
