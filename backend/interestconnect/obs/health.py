"""Health check helpers for liveness and readiness probes."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from time import perf_counter
from typing import Any, Dict, Tuple

from interestconnect.infra import postgres
from interestconnect.infra.redis import redis_client

LOGGER = logging.getLogger(__name__)


async def _redis_status(timeout: float = 0.2) -> Dict[str, Any]:
	start = perf_counter()
	try:
		await asyncio.wait_for(redis_client.ping(), timeout=timeout)
	except Exception as exc:  # pragma: no cover - depends on runtime
		LOGGER.warning("Redis readiness check failed", exc_info=True)
		return {"ok": False, "error": type(exc).__name__}
	return {"ok": True, "latency_ms": round((perf_counter() - start) * 1000, 2)}


async def _postgres_status(timeout: float = 0.3) -> Dict[str, Any]:
	start = perf_counter()
	try:
		pool = await postgres.get_pool()
		async with pool.acquire() as conn:
			await asyncio.wait_for(conn.execute("SELECT 1"), timeout=timeout)
	except Exception as exc:  # pragma: no cover - depends on runtime
		LOGGER.warning("Postgres readiness query failed", exc_info=True)
		return {"ok": False, "error": type(exc).__name__}
	return {"ok": True, "latency_ms": round((perf_counter() - start) * 1000, 2)}


async def liveness() -> Dict[str, str]:
	return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


async def readiness() -> Tuple[int, Dict[str, Any]]:
	redis_status, postgres_status = await asyncio.gather(_redis_status(), _postgres_status())
	ok = redis_status["ok"] and postgres_status["ok"]
	payload = {
		"status": "ok" if ok else "degraded",
		"checks": {"redis": redis_status, "postgres": postgres_status},
	}
	return (200 if ok else 503), payload
