from __future__ import annotations

import json
import logging
import time
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime, timezone
from typing import Any


class MetricsClient:
    """
    Emits one JSON line per timed operation on the ``metrics.actions`` logger.

    Spans yield a mutable dict; whatever the caller puts there is added to the
    emitted line. A failed span records the exception class under ``error``.
    """

    def __init__(self, logger_name: str = "metrics.actions"):
        self._logger = logging.getLogger(logger_name)

    def configure(self, logger: logging.Logger | None = None) -> None:
        if logger:
            self._logger = logger

    def emit(
        self,
        action: str,
        *,
        duration_ms: float,
        success: bool,
        source: str | None = None,
        fields: dict[str, Any] | None = None,
    ) -> None:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "action": action,
            "duration_ms": round(duration_ms, 3),
            "success": success,
        }
        if source:
            payload["source"] = source
        payload.update(fields or {})
        self._logger.info(json.dumps(payload, ensure_ascii=False, default=str))

    def _finish(self, action: str, started: float, source: str | None, fields: dict[str, Any]) -> None:
        self.emit(
            action,
            duration_ms=(time.perf_counter() - started) * 1000,
            success="error" not in fields,
            source=source,
            fields=fields,
        )

    @contextmanager
    def span(self, action: str, *, source: str | None = None, extra: dict | None = None):
        fields: dict[str, Any] = dict(extra or {})
        started = time.perf_counter()
        try:
            yield fields
        except Exception as exc:
            fields["error"] = type(exc).__name__
            raise
        finally:
            self._finish(action, started, source, fields)

    @asynccontextmanager
    async def span_async(self, action: str, *, source: str | None = None, extra: dict | None = None):
        fields: dict[str, Any] = dict(extra or {})
        started = time.perf_counter()
        try:
            yield fields
        except Exception as exc:
            fields["error"] = type(exc).__name__
            raise
        finally:
            self._finish(action, started, source, fields)


metrics = MetricsClient()
