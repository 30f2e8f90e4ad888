"""
Core module - Configuration, database, security, and utilities.
"""

from beacon_api.core.config import get_settings, settings
from beacon_api.core.database import Base, close_db, get_db, init_db
from beacon_api.core.redis import close_redis, get_redis, init_redis
from beacon_api.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Database
    "Base",
    "get_db",
    "init_db",
    "close_db",
    # Redis
    "get_redis",
    "init_redis",
    "close_redis",
    # Security
    "hash_password",
    "verify_password",
    "create_access_token",
    "create_refresh_token",
    "decode_token",
]
