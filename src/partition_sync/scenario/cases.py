"""The catalog sync case table."""

from __future__ import annotations

from collections.abc import Iterable

from partition_sync.models import SecurityMode, SyncCase

DEFAULT_NAMESPACE = "default"
SECURE_SUFFIX = "; ACLs and auto-encrypt enabled"


def build_cases(workload_namespace: str = "ns1") -> list[SyncCase]:
    """Return the six cases: three namespace policies, each without and with ACLs."""
    policies = [
        ("default destination namespace", DEFAULT_NAMESPACE, False),
        ("single destination namespace", workload_namespace, False),
        ("mirror k8s namespaces", workload_namespace, True),
    ]
    cases = []
    for name, destination, mirror in policies:
        for secure in (False, True):
            cases.append(
                SyncCase(
                    name=name + (SECURE_SUFFIX if secure else ""),
                    destination_namespace=destination,
                    mirror_k8s=mirror,
                    security=SecurityMode.of(secure),
                    workload_namespace=workload_namespace,
                )
            )
    return cases


def select_cases(cases: Iterable[SyncCase], names: Iterable[str] | None) -> list[SyncCase]:
    """Filter cases by name or slug.

    Raises:
        ValueError: If a name matches no case.
    """
    all_cases = list(cases)
    wanted = list(names or [])
    if not wanted:
        return all_cases

    selected = []
    for name in wanted:
        matches = [c for c in all_cases if name in (c.name, c.slug)]
        if not matches:
            raise ValueError(f"Unknown case: {name!r}")
        selected.extend(m for m in matches if m not in selected)
    return selected


def isolate(case: SyncCase, suffix: str) -> SyncCase:
    """Give a case its own workload namespace so it can run alongside others.

    Catalog sync of its releases is limited to that namespace, so that
    concurrent cases never register each other's workloads. A destination
    namespace that pointed at the shared workload namespace follows it.
    """
    namespace = f"{case.workload_namespace}-{suffix}"
    update: dict[str, str | bool] = {
        "workload_namespace": namespace,
        "sync_workload_namespace_only": True,
    }
    if case.destination_namespace == case.workload_namespace:
        update["destination_namespace"] = namespace
    return case.model_copy(update=update)
