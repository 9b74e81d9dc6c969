"""The two clusters a scenario runs against."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Generator

from partition_sync.clients.base import K8sClient
from partition_sync.config import PartitionSyncConfig

logger = logging.getLogger(__name__)

PRIMARY_CLUSTER = "server"
SECONDARY_CLUSTER = "client"


@dataclass
class ClusterContext:
    """One Kubernetes cluster and the namespace Consul is installed into."""

    name: str
    kube_context: str | None
    namespace: str
    k8s: K8sClient


@dataclass
class Environment:
    """Configuration and cluster access shared by every step of a case.

    Passed explicitly to each component; nothing reads cluster state from
    module globals.
    """

    config: PartitionSyncConfig
    primary: ClusterContext
    secondary: ClusterContext

    @classmethod
    def from_config(cls, config: PartitionSyncConfig) -> Environment:
        """Build an unconnected environment from configuration."""
        return cls(
            config=config,
            primary=ClusterContext(
                name=PRIMARY_CLUSTER,
                kube_context=config.primary_context,
                namespace=config.kube_namespace,
                k8s=K8sClient(config, config.primary_context),
            ),
            secondary=ClusterContext(
                name=SECONDARY_CLUSTER,
                kube_context=config.secondary_context,
                namespace=config.kube_namespace,
                k8s=K8sClient(config, config.secondary_context),
            ),
        )

    def connect(self) -> None:
        self.primary.k8s.connect()
        self.secondary.k8s.connect()

    def disconnect(self) -> None:
        self.primary.k8s.disconnect()
        self.secondary.k8s.disconnect()


@contextmanager
def open_environment(config: PartitionSyncConfig) -> Generator[Environment, None, None]:
    """Context manager yielding a connected environment."""
    env = Environment.from_config(config)
    env.connect()
    try:
        yield env
    finally:
        env.disconnect()
