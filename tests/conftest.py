"""Shared fixtures for partition-sync tests."""

from typing import Any
from unittest.mock import MagicMock

import pytest

from partition_sync.config import PartitionSyncConfig
from partition_sync.models import CatalogServiceEntry, Partition, PartitionRole
from partition_sync.scenario.environment import ClusterContext, Environment
from partition_sync.utils.errors import NotFoundError, ResourceExistsError


class FakeSecretStore:
    """In-memory stand-in for the secret operations of K8sClient."""

    def __init__(self, secrets: dict[str, dict[str, str]] | None = None) -> None:
        self.secrets: dict[str, dict[str, str]] = dict(secrets or {})

    def get_secret(self, name: str, namespace: str) -> Any:
        if name not in self.secrets:
            raise NotFoundError("Secret", name, namespace)
        secret = MagicMock()
        secret.data = self.secrets[name]
        secret.type = "Opaque"
        return secret

    def create_secret(
        self,
        name: str,
        namespace: str,
        data: dict[str, str],
        secret_type: str | None = None,
        labels: dict[str, str] | None = None,
    ) -> None:
        if name in self.secrets:
            raise ResourceExistsError("Secret", name, namespace)
        self.secrets[name] = dict(data)

    def delete_secret(self, name: str, namespace: str) -> None:
        if name not in self.secrets:
            raise NotFoundError("Secret", name, namespace)
        del self.secrets[name]


@pytest.fixture
def config() -> PartitionSyncConfig:
    """Create a config with enterprise enabled and short retry budgets."""
    return PartitionSyncConfig(
        kubeconfig_path="/tmp/partition-sync-test-kubeconfig",
        primary_context="kind-dc1",
        secondary_context="kind-dc2",
        enable_enterprise=True,
        convergence_attempts=3,
        convergence_wait_seconds=0,
        token_check_attempts=2,
        token_check_wait_seconds=0,
    )


@pytest.fixture
def primary_cluster() -> ClusterContext:
    """Create the server cluster with a mocked K8sClient."""
    return ClusterContext(name="server", kube_context="kind-dc1", namespace="default", k8s=MagicMock())


@pytest.fixture
def secondary_cluster() -> ClusterContext:
    """Create the client cluster with a mocked K8sClient."""
    return ClusterContext(name="client", kube_context="kind-dc2", namespace="default", k8s=MagicMock())


@pytest.fixture
def env(
    config: PartitionSyncConfig,
    primary_cluster: ClusterContext,
    secondary_cluster: ClusterContext,
) -> Environment:
    """Create an environment over the two mocked clusters."""
    return Environment(config=config, primary=primary_cluster, secondary=secondary_cluster)


@pytest.fixture
def mock_installer() -> MagicMock:
    """Create a mock HelmInstaller that returns the installed partition."""
    installer = MagicMock()

    def _install(
        cluster: ClusterContext,
        release_name: str,
        values: dict[str, str],
        partition_name: str,
        role: PartitionRole,
    ) -> Partition:
        return Partition(
            name=partition_name,
            role=role,
            context=cluster.name,
            release_name=release_name,
            namespace=cluster.namespace,
        )

    installer.install.side_effect = _install
    return installer


@pytest.fixture
def mock_consul() -> MagicMock:
    """Create a mock ConsulClient whose catalog has converged."""
    consul = MagicMock()
    consul.list_services.return_value = {"consul": [], "static-server": ["k8s"]}
    consul.get_service.return_value = [
        CatalogServiceEntry(service_name="static-server", tags=["k8s"], address="10.1.0.7", port=80)
    ]
    consul.list_tokens.return_value = []
    return consul


@pytest.fixture
def secret_store() -> type[FakeSecretStore]:
    """Return the in-memory secret store class."""
    return FakeSecretStore
