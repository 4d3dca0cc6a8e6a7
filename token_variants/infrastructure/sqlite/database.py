from __future__ import annotations

from contextlib import asynccontextmanager

import aiosqlite

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;

CREATE TABLE IF NOT EXISTS image_cache (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  path TEXT UNIQUE NOT NULL,
  name TEXT NOT NULL,
  source TEXT NOT NULL,
  types TEXT NOT NULL DEFAULT 'portrait,token',
  cached_at TEXT DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_image_cache_name ON image_cache(name);

CREATE TABLE IF NOT EXISTS token_configs (
  img_src TEXT NOT NULL,
  img_name TEXT NOT NULL,
  config TEXT NOT NULL DEFAULT '{}',
  updated_at TEXT DEFAULT (datetime('now')),
  PRIMARY KEY (img_src, img_name)
);

CREATE TABLE IF NOT EXISTS forge_paths (
  position INTEGER PRIMARY KEY,
  path TEXT UNIQUE NOT NULL
);

CREATE TABLE IF NOT EXISTS mapper_options (
  id INTEGER PRIMARY KEY CHECK (id = 1),
  options TEXT NOT NULL DEFAULT '{}',
  updated_at TEXT DEFAULT (datetime('now'))
);
"""


class SQLiteDatabase:
    def __init__(self, path: str):
        self.path = path

    async def init(self) -> None:
        async with aiosqlite.connect(self.path) as conn:
            conn.row_factory = aiosqlite.Row
            await conn.executescript(SCHEMA_SQL)
            await conn.commit()

    @asynccontextmanager
    async def connect(self):
        conn = await aiosqlite.connect(self.path)
        conn.row_factory = aiosqlite.Row
        try:
            yield conn
        finally:
            await conn.close()
