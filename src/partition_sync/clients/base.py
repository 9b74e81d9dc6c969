"""Kubernetes client bound to a single kubeconfig context."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from kubernetes import client, config
from kubernetes.client import ApiException
from tenacity import RetryError, Retrying, retry_if_result, stop_after_attempt, wait_fixed

from partition_sync.config import PartitionSyncConfig
from partition_sync.utils.errors import (
    AuthenticationError,
    NotFoundError,
    PartitionSyncError,
    ResourceExistsError,
)

logger = logging.getLogger(__name__)


class K8sClient:
    """Kubernetes client for one cluster.

    Each client is created from the kubeconfig file with an explicit context,
    so that two clients can talk to two different clusters side by side.
    """

    def __init__(
        self,
        config_obj: PartitionSyncConfig,
        context: str | None = None,
    ) -> None:
        self._config = config_obj
        self._context = context
        self._api_client: client.ApiClient | None = None
        self._core_v1: client.CoreV1Api | None = None
        self._apps_v1: client.AppsV1Api | None = None

    def connect(self) -> None:
        """Establish connection to Kubernetes API."""
        try:
            self._api_client = self._create_api_client()
            self._core_v1 = client.CoreV1Api(self._api_client)
            self._apps_v1 = client.AppsV1Api(self._api_client)
            logger.info(f"Connected to Kubernetes API (context: {self._context or 'current'})")
        except AuthenticationError:
            raise
        except Exception as e:
            raise AuthenticationError(f"Failed to connect to Kubernetes API: {e}") from e

    def disconnect(self) -> None:
        """Close connection to Kubernetes API."""
        if self._api_client:
            self._api_client.close()
            self._api_client = None
            self._core_v1 = None
            self._apps_v1 = None
            logger.info(f"Disconnected from Kubernetes API (context: {self._context or 'current'})")

    @property
    def is_connected(self) -> bool:
        """Check if client is connected."""
        return self._api_client is not None

    def _create_api_client(self) -> client.ApiClient:
        """Create client using the kubeconfig file and this client's context."""
        kubeconfig_path = self._config.effective_kubeconfig_path
        if not kubeconfig_path.exists():
            raise AuthenticationError(f"Kubeconfig not found: {kubeconfig_path}")

        # new_client_from_config avoids the library's global default configuration
        return config.new_client_from_config(
            config_file=str(kubeconfig_path),
            context=self._context,
        )

    @property
    def api_client(self) -> client.ApiClient:
        """Get the underlying API client."""
        if not self._api_client:
            raise PartitionSyncError("Client not connected. Call connect() first.")
        return self._api_client

    @property
    def core_v1(self) -> client.CoreV1Api:
        """Get the CoreV1 API client."""
        if not self._core_v1:
            raise PartitionSyncError("Client not connected. Call connect() first.")
        return self._core_v1

    @property
    def apps_v1(self) -> client.AppsV1Api:
        """Get the AppsV1 API client."""
        if not self._apps_v1:
            raise PartitionSyncError("Client not connected. Call connect() first.")
        return self._apps_v1

    # Namespace operations
    def create_namespace(self, name: str) -> Any:
        """Create a namespace."""
        body = client.V1Namespace(metadata=client.V1ObjectMeta(name=name))
        try:
            return self.core_v1.create_namespace(body=body)
        except ApiException as e:
            if e.status == 409:
                raise ResourceExistsError("Namespace", name) from e
            raise PartitionSyncError(f"Failed to create namespace '{name}': {e.reason}") from e

    def delete_namespace(self, name: str) -> None:
        """Delete a namespace."""
        try:
            self.core_v1.delete_namespace(name=name)
        except ApiException as e:
            if e.status == 404:
                raise NotFoundError("Namespace", name) from e
            raise PartitionSyncError(f"Failed to delete namespace '{name}': {e.reason}") from e

    # Secret operations
    def get_secret(self, name: str, namespace: str) -> Any:
        """Get a secret."""
        try:
            return self.core_v1.read_namespaced_secret(name=name, namespace=namespace)
        except ApiException as e:
            if e.status == 404:
                raise NotFoundError("Secret", name, namespace) from e
            raise PartitionSyncError(f"Failed to get secret '{name}': {e.reason}") from e

    def create_secret(
        self,
        name: str,
        namespace: str,
        data: dict[str, str],
        secret_type: str | None = None,
        labels: dict[str, str] | None = None,
    ) -> Any:
        """Create a secret from base64-encoded ``data``."""
        body = client.V1Secret(
            metadata=client.V1ObjectMeta(name=name, namespace=namespace, labels=labels),
            data=data,
            type=secret_type,
        )
        try:
            return self.core_v1.create_namespaced_secret(namespace=namespace, body=body)
        except ApiException as e:
            if e.status == 409:
                raise ResourceExistsError("Secret", name, namespace) from e
            raise PartitionSyncError(f"Failed to create secret '{name}': {e.reason}") from e

    def delete_secret(self, name: str, namespace: str) -> None:
        """Delete a secret."""
        try:
            self.core_v1.delete_namespaced_secret(name=name, namespace=namespace)
        except ApiException as e:
            if e.status == 404:
                raise NotFoundError("Secret", name, namespace) from e
            raise PartitionSyncError(f"Failed to delete secret '{name}': {e.reason}") from e

    def delete_secrets(self, namespace: str, label_selector: str) -> None:
        """Delete all secrets matching a label selector."""
        try:
            self.core_v1.delete_collection_namespaced_secret(
                namespace=namespace, label_selector=label_selector
            )
        except ApiException as e:
            raise PartitionSyncError(f"Failed to delete secrets: {e.reason}") from e

    def delete_pvcs(self, namespace: str, label_selector: str) -> None:
        """Delete all PersistentVolumeClaims matching a label selector."""
        try:
            self.core_v1.delete_collection_namespaced_persistent_volume_claim(
                namespace=namespace, label_selector=label_selector
            )
        except ApiException as e:
            raise PartitionSyncError(f"Failed to delete PVCs: {e.reason}") from e

    # Pod operations
    def list_pods(self, namespace: str, label_selector: str | None = None) -> list[Any]:
        """List pods in a namespace."""
        try:
            result = self.core_v1.list_namespaced_pod(
                namespace=namespace, label_selector=label_selector
            )
            return result.items
        except ApiException as e:
            raise PartitionSyncError(f"Failed to list pods: {e.reason}") from e

    def read_pod_log(self, name: str, namespace: str, container: str | None = None) -> str:
        """Read the full log of a pod."""
        kwargs: dict[str, Any] = {"name": name, "namespace": namespace}
        if container:
            kwargs["container"] = container
        try:
            return self.core_v1.read_namespaced_pod_log(**kwargs)
        except ApiException as e:
            if e.status == 404:
                raise NotFoundError("Pod", name, namespace) from e
            raise PartitionSyncError(f"Failed to read logs of pod '{name}': {e.reason}") from e

    # Workload operations
    def create_service_account(self, body: dict[str, Any], namespace: str) -> Any:
        """Create a service account."""
        return self._create("ServiceAccount", body, namespace, self.core_v1.create_namespaced_service_account)

    def delete_service_account(self, name: str, namespace: str) -> None:
        """Delete a service account."""
        self._delete("ServiceAccount", name, namespace, self.core_v1.delete_namespaced_service_account)

    def create_service(self, body: dict[str, Any], namespace: str) -> Any:
        """Create a service."""
        return self._create("Service", body, namespace, self.core_v1.create_namespaced_service)

    def delete_service(self, name: str, namespace: str) -> None:
        """Delete a service."""
        self._delete("Service", name, namespace, self.core_v1.delete_namespaced_service)

    def create_deployment(self, body: dict[str, Any], namespace: str) -> Any:
        """Create a deployment."""
        return self._create("Deployment", body, namespace, self.apps_v1.create_namespaced_deployment)

    def delete_deployment(self, name: str, namespace: str) -> None:
        """Delete a deployment."""
        self._delete("Deployment", name, namespace, self.apps_v1.delete_namespaced_deployment)

    def _create(
        self,
        kind: str,
        body: dict[str, Any],
        namespace: str,
        create: Callable[..., Any],
    ) -> Any:
        try:
            return create(namespace=namespace, body=body)
        except ApiException as e:
            name = body.get("metadata", {}).get("name", "unknown")
            if e.status == 409:
                raise ResourceExistsError(kind, name, namespace) from e
            raise PartitionSyncError(f"Failed to create {kind} '{name}': {e.reason}") from e

    def _delete(
        self,
        kind: str,
        name: str,
        namespace: str,
        delete: Callable[..., Any],
    ) -> None:
        try:
            delete(name=name, namespace=namespace)
        except ApiException as e:
            if e.status == 404:
                raise NotFoundError(kind, name, namespace) from e
            raise PartitionSyncError(f"Failed to delete {kind} '{name}': {e.reason}") from e

    # Addressing
    def service_host(
        self,
        name: str,
        namespace: str,
        sleep: Callable[[float], None] | None = None,
    ) -> str:
        """Get the externally reachable host of a service.

        On kind the clusters share a docker network and have no load
        balancers, so the InternalIP of a node is used together with the
        service's NodePort. Otherwise the load balancer ingress address is
        awaited until it is assigned.
        """
        if self._config.use_kind:
            return self._node_address()

        retrying = Retrying(
            stop=stop_after_attempt(self._config.service_host_attempts),
            wait=wait_fixed(self._config.service_host_wait_seconds),
            retry=retry_if_result(lambda host: host is None),
            sleep=sleep or time.sleep,
        )
        try:
            host: str = retrying(self._load_balancer_address, name, namespace)
        except RetryError as e:
            raise PartitionSyncError(
                f"Service '{name}' in namespace '{namespace}' has no load balancer address"
            ) from e
        return host

    def _load_balancer_address(self, name: str, namespace: str) -> str | None:
        try:
            svc = self.core_v1.read_namespaced_service(name=name, namespace=namespace)
        except ApiException as e:
            if e.status == 404:
                raise NotFoundError("Service", name, namespace) from e
            raise PartitionSyncError(f"Failed to get service '{name}': {e.reason}") from e

        ingress = (svc.status.load_balancer and svc.status.load_balancer.ingress) or []
        for entry in ingress:
            if entry.ip:
                return entry.ip
            if entry.hostname:
                return entry.hostname
        logger.debug(f"Waiting for load balancer address of service '{name}'")
        return None

    def api_server_host(self) -> str:
        """Get the Kubernetes API server URL as seen from the other cluster.

        On kind the kubeconfig points at a port forwarded to localhost, which
        is meaningless from inside another cluster; the control plane node's
        address is used instead.
        """
        if self._config.use_kind:
            return f"https://{self._node_address()}:6443"
        return str(self.api_client.configuration.host)

    def _node_address(self) -> str:
        try:
            nodes = self.core_v1.list_node().items
        except ApiException as e:
            raise PartitionSyncError(f"Failed to list nodes: {e.reason}") from e

        for node in nodes:
            for address in node.status.addresses or []:
                if address.type == "InternalIP":
                    return address.address
        raise PartitionSyncError("No node with an InternalIP address found")

