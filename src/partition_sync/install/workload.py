"""Deployment of the static-server workload."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from partition_sync.scenario.environment import ClusterContext

logger = logging.getLogger(__name__)

STATIC_SERVER_NAME = "static-server"
STATIC_SERVER_IMAGE = "docker.mirror.hashicorp.services/hashicorp/http-echo:alpine"
STATIC_SERVER_PORT = 8080


def static_server_manifests(name: str = STATIC_SERVER_NAME) -> dict[str, dict[str, Any]]:
    """Return the ServiceAccount, Service and Deployment of the static-server.

    Catalog sync registers the ClusterIP service with the default ``k8s`` tag
    and one instance for the single replica.
    """
    labels = {"app": name}
    return {
        "ServiceAccount": {
            "apiVersion": "v1",
            "kind": "ServiceAccount",
            "metadata": {"name": name},
        },
        "Service": {
            "apiVersion": "v1",
            "kind": "Service",
            "metadata": {"name": name},
            "spec": {
                "selector": labels,
                "ports": [{"port": 80, "targetPort": STATIC_SERVER_PORT}],
            },
        },
        "Deployment": {
            "apiVersion": "apps/v1",
            "kind": "Deployment",
            "metadata": {"name": name},
            "spec": {
                "replicas": 1,
                "selector": {"matchLabels": labels},
                "template": {
                    "metadata": {"name": name, "labels": labels},
                    "spec": {
                        "serviceAccountName": name,
                        "containers": [
                            {
                                "name": name,
                                "image": STATIC_SERVER_IMAGE,
                                "args": [
                                    '-text="hello world"',
                                    f"-listen=:{STATIC_SERVER_PORT}",
                                ],
                                "ports": [{"containerPort": STATIC_SERVER_PORT, "name": "http"}],
                                "readinessProbe": {
                                    "tcpSocket": {"port": STATIC_SERVER_PORT},
                                    "periodSeconds": 1,
                                },
                            }
                        ],
                    },
                },
            },
        },
    }


class WorkloadDeployer:
    """Applies the fixed static-server bundle into a cluster namespace."""

    def __init__(self, cluster: ClusterContext, name: str = STATIC_SERVER_NAME) -> None:
        self._cluster = cluster
        self._name = name

    @property
    def name(self) -> str:
        """Name of the workload and of the service it registers."""
        return self._name

    def deploy(self, namespace: str) -> None:
        """Create the workload objects in ``namespace``."""
        logger.info(f"Creating {self._name} in namespace {namespace} of the {self._cluster.name} cluster")
        manifests = static_server_manifests(self._name)
        k8s = self._cluster.k8s
        k8s.create_service_account(manifests["ServiceAccount"], namespace)
        k8s.create_service(manifests["Service"], namespace)
        k8s.create_deployment(manifests["Deployment"], namespace)

    def remove(self, namespace: str) -> None:
        """Delete the workload objects from ``namespace``."""
        logger.info(f"Deleting {self._name} from namespace {namespace} of the {self._cluster.name} cluster")
        k8s = self._cluster.k8s
        k8s.delete_deployment(self._name, namespace)
        k8s.delete_service(self._name, namespace)
        k8s.delete_service_account(self._name, namespace)
