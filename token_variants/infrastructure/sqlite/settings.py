from __future__ import annotations

from typing import Optional, Sequence

from token_variants.domain import MappingOptions
from token_variants.domain.repositories import ForgePathsRepository, MapperOptionsRepository
from token_variants.infrastructure.mappers import mapping_options_from_row, serialize_mapping_options

from .database import SQLiteDatabase


class SQLiteForgePathsRepository(ForgePathsRepository):
    def __init__(self, db: SQLiteDatabase):
        self._db = db

    async def list_paths(self) -> list[str]:
        async with self._db.connect() as conn:
            cur = await conn.execute("SELECT path FROM forge_paths ORDER BY position")
            rows = await cur.fetchall()
        return [str(row["path"]) for row in rows]

    async def save_paths(self, paths: Sequence[str]) -> None:
        unique = list(dict.fromkeys(paths))
        async with self._db.connect() as conn:
            await conn.execute("DELETE FROM forge_paths")
            await conn.executemany(
                "INSERT INTO forge_paths(position, path) VALUES(?, ?)",
                list(enumerate(unique)),
            )
            await conn.commit()


class SQLiteMapperOptionsRepository(MapperOptionsRepository):
    def __init__(self, db: SQLiteDatabase):
        self._db = db

    async def load(self) -> Optional[MappingOptions]:
        async with self._db.connect() as conn:
            cur = await conn.execute("SELECT options FROM mapper_options WHERE id=1")
            row = await cur.fetchone()
        if not row:
            return None
        return mapping_options_from_row(dict(row))

    async def save(self, options: MappingOptions) -> None:
        async with self._db.connect() as conn:
            await conn.execute(
                """
                INSERT INTO mapper_options(id, options, updated_at)
                VALUES(1, ?, datetime('now'))
                ON CONFLICT(id) DO UPDATE SET
                  options=excluded.options,
                  updated_at=excluded.updated_at
                """,
                (serialize_mapping_options(options),),
            )
            await conn.commit()
