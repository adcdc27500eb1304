"""Bounded awaits around external store calls."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from interestconnect.domain.common.exceptions import InterestConnectError, StoreUnavailable
from interestconnect.obs import metrics as obs_metrics
from interestconnect.settings import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def bounded(operation: str, awaitable: Awaitable[T], *, timeout: Optional[float] = None) -> T:
	"""Await a store call, mapping timeouts and driver errors to StoreUnavailable.

	Domain errors raised by the store itself (NotFound, Forbidden, ...) pass through.
	"""
	limit = settings.store_timeout_seconds if timeout is None else timeout
	try:
		return await asyncio.wait_for(awaitable, timeout=limit)
	except asyncio.TimeoutError:
		obs_metrics.inc_store_timeout(operation)
		logger.warning("store call timed out", extra={"operation": operation, "timeout_s": limit})
		raise StoreUnavailable(f"{operation} timed out") from None
	except InterestConnectError:
		raise
	except Exception as exc:
		logger.warning("store call failed", extra={"operation": operation}, exc_info=True)
		raise StoreUnavailable(f"{operation} failed") from exc
