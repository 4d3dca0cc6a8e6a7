from .database import SQLiteDatabase
from .images import SQLiteImageCacheRepository
from .token_configs import SQLiteTokenConfigRepository
from .settings import SQLiteForgePathsRepository, SQLiteMapperOptionsRepository

__all__ = [
    "SQLiteDatabase",
    "SQLiteImageCacheRepository",
    "SQLiteTokenConfigRepository",
    "SQLiteForgePathsRepository",
    "SQLiteMapperOptionsRepository",
]
