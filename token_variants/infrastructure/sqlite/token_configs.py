from __future__ import annotations

from typing import Any, Optional, Sequence

from token_variants.domain.repositories import TokenConfigRepository
from token_variants.infrastructure.mappers import serialize_token_config, token_config_from_row

from .database import SQLiteDatabase


class SQLiteTokenConfigRepository(TokenConfigRepository):
    def __init__(self, db: SQLiteDatabase):
        self._db = db

    async def get(self, img_src: str, img_name: str) -> Optional[dict[str, Any]]:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                "SELECT config FROM token_configs WHERE img_src=? AND img_name=?",
                (img_src, img_name),
            )
            row = await cur.fetchone()
        if not row:
            return None
        return token_config_from_row(dict(row))

    async def save(self, img_src: str, img_name: str, config: dict[str, Any]) -> None:
        async with self._db.connect() as conn:
            await conn.execute(
                """
                INSERT INTO token_configs(img_src, img_name, config, updated_at)
                VALUES(?, ?, ?, datetime('now'))
                ON CONFLICT(img_src, img_name) DO UPDATE SET
                  config=excluded.config,
                  updated_at=excluded.updated_at
                """,
                (img_src, img_name, serialize_token_config(config)),
            )
            await conn.commit()

    async def delete(self, img_src: str, img_name: str) -> bool:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                "DELETE FROM token_configs WHERE img_src=? AND img_name=?",
                (img_src, img_name),
            )
            await conn.commit()
            return cur.rowcount > 0

    async def list_all(self) -> Sequence[tuple[str, str, dict[str, Any]]]:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                SELECT img_src, img_name, config
                FROM token_configs
                ORDER BY img_name COLLATE NOCASE, img_src
                """
            )
            rows = await cur.fetchall()
        return [(row["img_src"], row["img_name"], token_config_from_row(dict(row))) for row in rows]
