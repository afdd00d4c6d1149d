"""Error taxonomy for the health-check engine."""


class StatusGuardError(Exception):
    """Base class for engine errors."""


class ProbeError(StatusGuardError):
    """A probe could not be carried out. Always folded into a failed result."""


class StorageError(StatusGuardError):
    """Reading or writing the result store, incident ledger or service table failed."""


class SchedulingFailure(StatusGuardError):
    """The service list could not be fetched, so the cycle was abandoned."""


class ServiceNotFoundError(StatusGuardError):
    """A manual check was requested for a service id that does not exist."""

    def __init__(self, service_id: str):
        super().__init__(f"Service not found: {service_id}")
        self.service_id = service_id
