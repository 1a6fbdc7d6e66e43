"""
Quota (admission control) service.

The quota service is a single asyncio task that owns every usage counter.
Callers talk to it through a request queue and wait on a future for the
decision, so any number of coroutines may consume and release quota for
the same tenant concurrently without locks:

    result = await quota.consume(tenant_id, RequestedResource(EXTERNAL_IP, 1))
    if not result.allowed():
        ...

A denied request is not counted. Each granted unit must be handed back with
release() exactly once when the resource it guarded is not kept. A consumer
cancelled while waiting never holds a unit: the request is skipped if still
queued, or its grant is returned if the decision was already made.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from hakufloat.models.enums import ResourceType
from hakufloat.utils.logger import get_logger

logger = get_logger(__name__)

UNLIMITED = -1


@dataclass(frozen=True)
class RequestedResource:
    """A quantity of one resource type."""

    type: ResourceType
    value: int = 1


@dataclass(frozen=True)
class QuotaResult:
    """Admission decision for a consume() request."""

    tenant_id: str
    resource: RequestedResource
    granted: bool
    usage: int
    limit: int

    def allowed(self) -> bool:
        return self.granted


@dataclass
class _QuotaRequest:
    op: str  # "consume" | "release"
    tenant_id: str
    resource: RequestedResource
    future: asyncio.Future = field(repr=False)


class QuotaService:
    """
    Per-tenant quota bookkeeping behind a request/response actor.

    Args:
        default_limits: Limit applied to tenants without an explicit limit,
            per resource type. Missing types are unlimited.
    """

    def __init__(self, default_limits: dict[ResourceType, int] | None = None):
        self.default_limits = dict(default_limits or {})
        self._limits: dict[tuple[str, ResourceType], int] = {}
        self._usage: dict[tuple[str, ResourceType], int] = {}
        self._queue: asyncio.Queue[_QuotaRequest | None] | None = None
        self._task: asyncio.Task | None = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """Start the admission task on the running event loop."""
        if self._task is not None and not self._task.done():
            return
        self._queue = asyncio.Queue()
        self._task = asyncio.create_task(self._run(), name="quota-service")
        logger.info("Quota service started")

    async def stop(self) -> None:
        """Drain pending requests and stop the admission task."""
        if self._task is None:
            return
        await self._queue.put(None)
        await self._task
        self._task = None
        logger.info("Quota service stopped")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # =========================================================================
    # Requests
    # =========================================================================

    async def consume(self, tenant_id: str, resource: RequestedResource) -> QuotaResult:
        """Ask for resource units; waits until the decision is made."""
        return await self._submit("consume", tenant_id, resource)

    async def release(self, tenant_id: str, resource: RequestedResource) -> None:
        """Hand previously consumed units back."""
        await self._submit("release", tenant_id, resource)

    def set_limit(self, tenant_id: str, resource_type: ResourceType, limit: int) -> None:
        self._limits[(tenant_id, resource_type)] = limit

    def get_limit(self, tenant_id: str, resource_type: ResourceType) -> int:
        return self._limits.get(
            (tenant_id, resource_type),
            self.default_limits.get(resource_type, UNLIMITED),
        )

    def usage(self, tenant_id: str, resource_type: ResourceType) -> int:
        return self._usage.get((tenant_id, resource_type), 0)

    async def _submit(
        self, op: str, tenant_id: str, resource: RequestedResource
    ) -> QuotaResult:
        if not self.running:
            raise RuntimeError("Quota service is not running")
        future = asyncio.get_running_loop().create_future()
        await self._queue.put(_QuotaRequest(op, tenant_id, resource, future))
        try:
            return await future
        except asyncio.CancelledError:
            if op == "consume" and future.done() and not future.cancelled():
                self._return_abandoned(future)
            raise

    def _return_abandoned(self, future: asyncio.Future) -> None:
        """Hand back units granted to a consumer that was cancelled meanwhile."""
        if future.exception() is not None or not future.result().allowed():
            return
        result = future.result()
        logger.warning(
            f"Consumer for tenant {result.tenant_id} was cancelled after a grant, "
            f"returning {result.resource.value} {result.resource.type.value}"
        )
        self._queue.put_nowait(
            _QuotaRequest(
                "release",
                result.tenant_id,
                result.resource,
                asyncio.get_running_loop().create_future(),
            )
        )

    # =========================================================================
    # Actor Loop
    # =========================================================================

    async def _run(self) -> None:
        while True:
            request = await self._queue.get()
            if request is None:
                break
            if request.op == "consume" and request.future.cancelled():
                # Consumer gave up before a decision; nothing to count
                continue
            try:
                if request.op == "consume":
                    result = self._consume(request.tenant_id, request.resource)
                else:
                    result = self._release(request.tenant_id, request.resource)
            except Exception as e:
                if not request.future.done():
                    request.future.set_exception(e)
                continue
            if not request.future.done():
                request.future.set_result(result)

    def _consume(self, tenant_id: str, resource: RequestedResource) -> QuotaResult:
        key = (tenant_id, resource.type)
        usage = self._usage.get(key, 0)
        limit = self.get_limit(tenant_id, resource.type)

        granted = limit == UNLIMITED or usage + resource.value <= limit
        if granted:
            usage += resource.value
            self._usage[key] = usage
            logger.debug(
                f"Quota granted: tenant={tenant_id} {resource.type.value} "
                f"usage={usage}/{limit}"
            )
        else:
            logger.info(
                f"Quota denied: tenant={tenant_id} {resource.type.value} "
                f"usage={usage}/{limit}"
            )

        return QuotaResult(
            tenant_id=tenant_id,
            resource=resource,
            granted=granted,
            usage=usage,
            limit=limit,
        )

    def _release(self, tenant_id: str, resource: RequestedResource) -> QuotaResult:
        key = (tenant_id, resource.type)
        usage = self._usage.get(key, 0)
        if usage < resource.value:
            logger.warning(
                f"Releasing {resource.value} {resource.type.value} for tenant "
                f"{tenant_id} with only {usage} in use"
            )
        usage = max(0, usage - resource.value)
        self._usage[key] = usage
        logger.debug(
            f"Quota released: tenant={tenant_id} {resource.type.value} usage={usage}"
        )
        return QuotaResult(
            tenant_id=tenant_id,
            resource=resource,
            granted=True,
            usage=usage,
            limit=self.get_limit(tenant_id, resource.type),
        )
