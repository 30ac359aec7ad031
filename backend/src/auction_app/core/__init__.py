from auction_app.core.config import settings
from auction_app.core.database import Base, async_session_maker, engine, get_db
from auction_app.core.redis import close_redis, get_redis
from auction_app.core.security import (
    create_access_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)

__all__ = [
    "settings",
    "Base",
    "engine",
    "async_session_maker",
    "get_db",
    "get_redis",
    "close_redis",
    "verify_password",
    "get_password_hash",
    "create_access_token",
    "decode_access_token",
]
