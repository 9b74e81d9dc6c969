"""Helm values for the primary and secondary installations of a case."""

from __future__ import annotations

from partition_sync.config import PartitionSyncConfig
from partition_sync.federation.planner import SECONDARY_PARTITION
from partition_sync.models import SyncCase, TrustPlan
from partition_sync.utils.naming import format_bool, merge_maps

# Fixed NodePort of the partition service on kind.
KIND_PARTITION_HTTPS_NODE_PORT = "30000"

# Consul server certificates are issued for this name.
SERVER_TLS_NAME = "server.dc1.consul"


def common_values(case: SyncCase, config: PartitionSyncConfig) -> dict[str, str]:
    """Values shared by both installations."""
    secure = case.security
    values = {
        "global.adminPartitions.enabled": "true",
        "global.enableConsulNamespaces": "true",
        "global.tls.enabled": "true",
        "global.tls.httpsOnly": format_bool(secure.auto_encrypt_enabled),
        "global.tls.enableAutoEncrypt": format_bool(secure.auto_encrypt_enabled),
        "global.acls.manageSystemACLs": format_bool(secure.acls_enabled),
        "syncCatalog.enabled": "true",
        # Ignored by consul-k8s when mirroringK8S is set.
        "syncCatalog.consulNamespaces.consulDestinationNamespace": case.destination_namespace,
        "syncCatalog.consulNamespaces.mirroringK8S": format_bool(case.mirror_k8s),
        "syncCatalog.addK8SNamespaceSuffix": "false",
        "controller.enabled": "true",
        "dns.enabled": "true",
        "dns.enableRedirection": format_bool(config.enable_transparent_proxy),
    }

    if case.sync_workload_namespace_only:
        values["syncCatalog.k8sAllowNamespaces[0]"] = case.workload_namespace

    if config.consul_image:
        values["global.image"] = config.consul_image
    if config.consul_k8s_image:
        values["global.imageK8S"] = config.consul_k8s_image
    if config.enterprise_license_secret_name and config.enterprise_license_secret_key:
        values["global.enterpriseLicense.secretName"] = config.enterprise_license_secret_name
        values["global.enterpriseLicense.secretKey"] = config.enterprise_license_secret_key

    return values


def primary_values(case: SyncCase, config: PartitionSyncConfig) -> dict[str, str]:
    """Values of the installation hosting the servers and the default partition."""
    values = {
        "server.exposeGossipAndRPCPorts": "true",
    }

    # Kind has no load balancers, but the clusters share a docker network,
    # so the other cluster can reach a NodePort on any node.
    if config.use_kind:
        values["global.adminPartitions.service.type"] = "NodePort"
        values["global.adminPartitions.service.nodePort.https"] = KIND_PARTITION_HTTPS_NODE_PORT

    return merge_maps(values, common_values(case, config))


def secondary_values(
    case: SyncCase,
    config: PartitionSyncConfig,
    partition_address: str,
    trust_plan: TrustPlan,
    partition_name: str = SECONDARY_PARTITION,
) -> dict[str, str]:
    """Values of the client-only installation joining the primary's servers."""
    values = {
        "global.enabled": "false",
        "global.adminPartitions.name": partition_name,
        "externalServers.enabled": "true",
        "externalServers.hosts[0]": partition_address,
        "externalServers.tlsServerName": SERVER_TLS_NAME,
        "client.enabled": "true",
        "client.exposeGossipPorts": "true",
        "client.join[0]": partition_address,
    }
    merge_maps(values, trust_plan.helm_values)

    if config.use_kind:
        values["externalServers.httpsPort"] = KIND_PARTITION_HTTPS_NODE_PORT

    return merge_maps(values, common_values(case, config))
