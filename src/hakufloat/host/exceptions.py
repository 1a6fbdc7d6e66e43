"""Exception classes for external address management."""


class HakuFloatError(Exception):
    """Base exception for pool and external address operations."""

    pass


class DuplicatePoolNameError(HakuFloatError):
    """A pool with the requested name already exists."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Pool name already in use: {name}")


class DuplicateAddressError(HakuFloatError):
    """An external address is already registered in some pool."""

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"External address already registered: {address}")


class BadRequestError(HakuFloatError):
    """Malformed request (missing or conflicting selectors)."""

    pass


class PoolEmptyError(HakuFloatError):
    """No pool has a free address matching the request."""

    def __init__(self, pool_name: str | None = None):
        self.pool_name = pool_name
        if pool_name:
            super().__init__(f"No free external address in pool '{pool_name}'")
        else:
            super().__init__("No free external address in any pool")


class QuotaExceededError(HakuFloatError):
    """Admission control denied the resource reservation."""

    def __init__(self, tenant_id: str, resource: str):
        self.tenant_id = tenant_id
        self.resource = resource
        super().__init__(f"Quota exceeded for tenant {tenant_id}: {resource}")


class NotFoundError(HakuFloatError):
    """A looked-up record does not exist (or is not visible to the caller)."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class AddressInUseError(HakuFloatError):
    """Deletion rejected because an address is still mapped."""

    pass


class RemoteAgentError(HakuFloatError):
    """Remote NAT agent programming failed."""

    pass


class AgentUnreachableError(RemoteAgentError):
    """The tenant's agent could not be contacted."""

    pass


class AgentRejectedError(RemoteAgentError):
    """The tenant's agent answered with an error status."""

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Agent rejected request ({status_code}): {detail}")
