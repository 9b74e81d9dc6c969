"""Resolution of the Consul namespace a synced service lands in."""

from __future__ import annotations

from partition_sync.federation.planner import PRIMARY_PARTITION, SECONDARY_PARTITION
from partition_sync.models import CatalogQuery, SyncCase


def resolve_namespace(destination_namespace: str, mirror_k8s: bool, source_namespace: str) -> str:
    """Return the Consul namespace a service from ``source_namespace`` is synced to.

    With mirroring the Kubernetes namespace is used as is and the declared
    destination is ignored.
    """
    if mirror_k8s:
        return source_namespace
    return destination_namespace


def catalog_queries(
    case: SyncCase,
    source_namespace: str | None = None,
    primary_partition: str = PRIMARY_PARTITION,
    secondary_partition: str = SECONDARY_PARTITION,
) -> tuple[CatalogQuery, CatalogQuery]:
    """Build the primary and secondary partition queries for a case.

    Both queries use the same namespace; only the partition differs.
    """
    namespace = resolve_namespace(
        case.destination_namespace,
        case.mirror_k8s,
        source_namespace or case.workload_namespace,
    )
    return (
        CatalogQuery(partition=primary_partition, namespace=namespace),
        CatalogQuery(partition=secondary_partition, namespace=namespace),
    )
