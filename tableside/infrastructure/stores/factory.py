from tableside.core.config import Settings
from tableside.infrastructure.database import make_engine
from tableside.infrastructure.stores.memory_store import MemoryKeyValueStore
from tableside.infrastructure.stores.redis_store import RedisKeyValueStore
from tableside.infrastructure.stores.sql_store import SqlKeyValueStore
from tableside.interfaces.IKeyValueStore import IKeyValueStore


def build_store(settings: Settings) -> IKeyValueStore:
    if settings.STORAGE_BACKEND == "redis":
        return RedisKeyValueStore(settings.REDIS_URL, ttl=settings.STORAGE_TTL)
    if settings.STORAGE_BACKEND == "sql":
        if not settings.DATABASE_URL:
            raise ValueError("STORAGE_BACKEND=sql needs DATABASE_URL")
        return SqlKeyValueStore(make_engine(settings.DATABASE_URL))
    return MemoryKeyValueStore()
