from __future__ import annotations

from typing import Sequence

from token_variants.domain import ImageEntry
from token_variants.domain.repositories import ImageCacheRepository
from token_variants.infrastructure.mappers import image_entry_from_row, serialize_types

from .database import SQLiteDatabase


class SQLiteImageCacheRepository(ImageCacheRepository):
    def __init__(self, db: SQLiteDatabase):
        self._db = db

    async def replace_all(self, images: Sequence[ImageEntry]) -> int:
        async with self._db.connect() as conn:
            await conn.execute("DELETE FROM image_cache")
            await conn.executemany(
                """
                INSERT INTO image_cache(path, name, source, types)
                VALUES(?, ?, ?, ?)
                ON CONFLICT(path) DO UPDATE SET
                  name=excluded.name,
                  source=excluded.source,
                  types=excluded.types
                """,
                [(image.path, image.name, image.source, serialize_types(image.types)) for image in images],
            )
            await conn.commit()
            cur = await conn.execute("SELECT COUNT(*) AS cnt FROM image_cache")
            row = await cur.fetchone()
        return int(row["cnt"]) if row else 0

    async def list_all(self) -> Sequence[ImageEntry]:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                SELECT path, name, source, types
                FROM image_cache
                ORDER BY path
                """
            )
            rows = await cur.fetchall()
        return [image_entry_from_row(dict(row)) for row in rows]

    async def count(self) -> int:
        async with self._db.connect() as conn:
            cur = await conn.execute("SELECT COUNT(*) AS cnt FROM image_cache")
            row = await cur.fetchone()
        return int(row["cnt"]) if row else 0
