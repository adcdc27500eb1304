import asyncio

import pytest

from interestconnect.domain.common.exceptions import NotFound, StoreUnavailable
from interestconnect.domain.common.timeouts import bounded


async def _value(result):
	return result


async def _raise(exc):
	raise exc


@pytest.mark.asyncio
async def test_bounded_returns_result():
	assert await bounded("test.value", _value(42)) == 42


@pytest.mark.asyncio
async def test_bounded_maps_timeout():
	with pytest.raises(StoreUnavailable) as excinfo:
		await bounded("test.slow", asyncio.sleep(1), timeout=0.01)
	assert excinfo.value.reason == "test.slow timed out"


@pytest.mark.asyncio
async def test_bounded_passes_domain_errors_through():
	with pytest.raises(NotFound):
		await bounded("test.lookup", _raise(NotFound("User not found")))


@pytest.mark.asyncio
async def test_bounded_wraps_driver_errors():
	with pytest.raises(StoreUnavailable) as excinfo:
		await bounded("test.insert", _raise(ConnectionResetError("reset")))
	assert isinstance(excinfo.value.__cause__, ConnectionResetError)
