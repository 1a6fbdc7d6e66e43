"""Tests for the quota admission service."""

import asyncio

import pytest

from hakufloat.host.services.quota import QuotaService, RequestedResource
from hakufloat.models.enums import ResourceType

UNIT = RequestedResource(ResourceType.EXTERNAL_IP, 1)


@pytest.mark.asyncio
async def test_unlimited_by_default(quota):
    for _ in range(5):
        result = await quota.consume("tenant-1", UNIT)
        assert result.allowed()

    assert quota.usage("tenant-1", ResourceType.EXTERNAL_IP) == 5


@pytest.mark.asyncio
async def test_limit_denies_without_counting(quota):
    quota.set_limit("tenant-1", ResourceType.EXTERNAL_IP, 1)

    assert (await quota.consume("tenant-1", UNIT)).allowed()
    denied = await quota.consume("tenant-1", UNIT)

    assert not denied.allowed()
    assert denied.usage == 1
    assert quota.usage("tenant-1", ResourceType.EXTERNAL_IP) == 1


@pytest.mark.asyncio
async def test_release_frees_capacity(quota):
    quota.set_limit("tenant-1", ResourceType.EXTERNAL_IP, 1)
    await quota.consume("tenant-1", UNIT)

    await quota.release("tenant-1", UNIT)

    assert quota.usage("tenant-1", ResourceType.EXTERNAL_IP) == 0
    assert (await quota.consume("tenant-1", UNIT)).allowed()


@pytest.mark.asyncio
async def test_limits_are_per_tenant(quota):
    quota.set_limit("tenant-1", ResourceType.EXTERNAL_IP, 0)

    assert not (await quota.consume("tenant-1", UNIT)).allowed()
    assert (await quota.consume("tenant-2", UNIT)).allowed()


@pytest.mark.asyncio
async def test_default_limit():
    service = QuotaService(default_limits={ResourceType.EXTERNAL_IP: 2})
    service.start()
    try:
        results = [await service.consume("tenant-1", UNIT) for _ in range(3)]
    finally:
        await service.stop()

    assert [r.allowed() for r in results] == [True, True, False]


@pytest.mark.asyncio
async def test_concurrent_consumers_never_exceed_limit(quota):
    quota.set_limit("tenant-1", ResourceType.EXTERNAL_IP, 3)

    results = await asyncio.gather(
        *[quota.consume("tenant-1", UNIT) for _ in range(10)]
    )

    assert sum(r.allowed() for r in results) == 3
    assert quota.usage("tenant-1", ResourceType.EXTERNAL_IP) == 3


@pytest.mark.asyncio
async def test_requests_need_running_service():
    service = QuotaService()

    with pytest.raises(RuntimeError):
        await service.consume("tenant-1", UNIT)


@pytest.mark.asyncio
@pytest.mark.parametrize("yields", [0, 1, 2])
async def test_cancelled_consumer_holds_no_units(quota, yields):
    # Depending on when the cancel lands the request is either skipped
    # while queued or its grant is handed back
    task = asyncio.create_task(quota.consume("tenant-1", UNIT))
    for _ in range(yields):
        await asyncio.sleep(0)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    # A later request is served after anything the cancel left queued
    assert (await quota.consume("tenant-2", UNIT)).allowed()
    assert quota.usage("tenant-1", ResourceType.EXTERNAL_IP) == 0


@pytest.mark.asyncio
async def test_cancelled_release_still_counts(quota):
    await quota.consume("tenant-1", UNIT)

    task = asyncio.create_task(quota.release("tenant-1", UNIT))
    await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    await quota.consume("tenant-2", UNIT)
    assert quota.usage("tenant-1", ResourceType.EXTERNAL_IP) == 0
