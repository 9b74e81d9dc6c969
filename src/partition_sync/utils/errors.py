"""Exceptions raised by partition-sync."""


class PartitionSyncError(Exception):
    """Base exception for all partition-sync errors."""

    pass


class SetupError(PartitionSyncError):
    """A broken precondition while bringing up a case.

    Setup errors abort the case immediately and are never retried.
    """

    pass


class AuthenticationError(SetupError):
    """Failed to authenticate against a Kubernetes API server."""

    pass


class NotFoundError(SetupError):
    """A Kubernetes object does not exist."""

    def __init__(self, kind: str, name: str, namespace: str | None = None) -> None:
        self.kind = kind
        self.name = name
        self.namespace = namespace
        location = f" in namespace '{namespace}'" if namespace else ""
        super().__init__(f"{kind} '{name}' not found{location}")


class ResourceExistsError(SetupError):
    """A Kubernetes object with the same name already exists.

    Raised as the write conflict of a secret relocation.
    """

    def __init__(self, kind: str, name: str, namespace: str | None = None) -> None:
        self.kind = kind
        self.name = name
        self.namespace = namespace
        location = f" in namespace '{namespace}'" if namespace else ""
        super().__init__(f"{kind} '{name}' already exists{location}")


class InstallationError(SetupError):
    """Helm failed to install or uninstall a release."""

    pass


class LivenessError(SetupError):
    """The secondary partition's agents are not running in the expected partition."""

    pass


class ConsulAPIError(PartitionSyncError):
    """The Consul HTTP API returned an error response."""

    pass


class ConsulConnectionError(ConsulAPIError):
    """The Consul HTTP API is unreachable or timed out."""

    pass


class VerificationError(PartitionSyncError):
    """A verification step did not hold."""

    pass


class ServiceNotVisibleError(VerificationError):
    """A service is not (yet) in a partition's catalog listing."""

    def __init__(
        self,
        partition: str,
        namespace: str,
        service: str,
        services: dict[str, list[str]] | None = None,
    ) -> None:
        self.partition = partition
        self.namespace = namespace
        self.service = service
        super().__init__(
            f"service '{service}' is not in Consul's list of services "
            f"{sorted(services or {})} in the {partition} partition (namespace '{namespace}')"
        )


class ConvergenceTimeoutError(VerificationError):
    """The catalog did not converge within the retry budget."""

    pass


class DetailMismatchError(VerificationError):
    """Catalog detail for a converged service is wrong."""

    pass


class StaleTokenError(VerificationError):
    """An access token for a removed workload is still listed."""

    pass
