"""Pydantic models for partitions, trust material, catalog state and cases."""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class PartitionRole(str, Enum):
    """Role of a partition within the datacenter."""

    PRIMARY = "primary"
    SECONDARY = "secondary"


class Partition(BaseModel):
    """An installed admin partition.

    The primary partition hosts the Consul servers and the CA; secondaries
    join it through external server references.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Partition name, unique within the datacenter")
    role: PartitionRole = Field(..., description="Primary or secondary")
    context: str = Field(..., description="Name of the cluster context it runs in")
    release_name: str = Field(..., description="Helm release name")
    namespace: str = Field(..., description="Kubernetes namespace of the release")


class SecurityMode(BaseModel):
    """ACL and auto-encrypt settings of a case."""

    model_config = ConfigDict(frozen=True)

    acls_enabled: bool = False
    auto_encrypt_enabled: bool = False

    @classmethod
    def of(cls, enabled: bool) -> SecurityMode:
        """Build a mode with ACLs and auto-encrypt both set to ``enabled``."""
        return cls(acls_enabled=enabled, auto_encrypt_enabled=enabled)


class TrustMaterialKind(str, Enum):
    """Kinds of credential a secondary partition may need."""

    CA_CERT = "ca_cert"
    CA_KEY = "ca_key"
    BOOTSTRAP_TOKEN = "bootstrap_token"


class TrustMaterialItem(BaseModel):
    """A secret that must be copied from the primary to a secondary cluster."""

    model_config = ConfigDict(frozen=True)

    kind: TrustMaterialKind
    secret_name: str = Field(..., description="Name of the Kubernetes secret")
    secret_key: str = Field(..., description="Key within the secret holding the value")
    origin: str = Field(..., description="Partition the secret is read from")
    destination: str = Field(..., description="Partition the secret is written for")


class TrustPlan(BaseModel):
    """Secrets to relocate and the Helm values that reference them."""

    model_config = ConfigDict(frozen=True)

    items: tuple[TrustMaterialItem, ...] = ()
    helm_values: dict[str, str] = Field(default_factory=dict)

    @property
    def kinds(self) -> frozenset[TrustMaterialKind]:
        """Kinds of trust material in the plan."""
        return frozenset(item.kind for item in self.items)

    def secret_names(self) -> list[str]:
        """Names of the secrets to relocate, in relocation order."""
        return [item.secret_name for item in self.items]


class CatalogQuery(BaseModel):
    """Scope of a catalog or ACL query."""

    model_config = ConfigDict(frozen=True)

    partition: str
    namespace: str

    def to_params(self) -> dict[str, str]:
        """Render as Consul HTTP API query parameters."""
        return {"partition": self.partition, "ns": self.namespace}


class CatalogServiceEntry(BaseModel):
    """One service instance as returned by ``/v1/catalog/service/<name>``."""

    service_name: str
    tags: list[str] = Field(default_factory=list)
    address: str | None = None
    port: int | None = None
    node: str | None = None
    namespace: str | None = None
    partition: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> CatalogServiceEntry:
        """Parse a catalog service API object."""
        return cls(
            service_name=data.get("ServiceName", ""),
            tags=data.get("ServiceTags") or [],
            address=data.get("ServiceAddress") or data.get("Address"),
            port=data.get("ServicePort"),
            node=data.get("Node"),
            namespace=data.get("Namespace"),
            partition=data.get("Partition"),
        )


class CatalogEntry(BaseModel):
    """Converged catalog record of a service in one partition and namespace."""

    service_name: str
    partition: str
    namespace: str
    tags: frozenset[str] = frozenset()
    instance_count: int = 0


class AccessToken(BaseModel):
    """An ACL token as listed by ``/v1/acl/tokens``."""

    accessor_id: str = ""
    description: str = ""
    partition: str | None = None
    namespace: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> AccessToken:
        """Parse an ACL token list API object."""
        return cls(
            accessor_id=data.get("AccessorID", ""),
            description=data.get("Description") or "",
            partition=data.get("Partition"),
            namespace=data.get("Namespace"),
        )


class SyncCase(BaseModel):
    """One configuration case of the catalog sync scenario."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Human-readable case name")
    destination_namespace: str = Field(..., description="Consul destination namespace")
    mirror_k8s: bool = Field(False, description="Mirror Kubernetes namespaces into Consul")
    security: SecurityMode = Field(default_factory=SecurityMode)
    workload_namespace: str = Field("ns1", description="Namespace the workload is deployed into")
    sync_workload_namespace_only: bool = Field(
        False, description="Restrict catalog sync to the workload namespace"
    )

    @property
    def slug(self) -> str:
        """Name reduced to lowercase words joined with dashes."""
        return re.sub(r"[^a-z0-9]+", "-", self.name.lower()).strip("-")


class CaseStatus(str, Enum):
    """Outcome of a case."""

    PASSED = "passed"
    FAILED = "failed"
    ERROR = "error"
    SKIPPED = "skipped"


class CaseResult(BaseModel):
    """Result of running one case."""

    case: SyncCase
    status: CaseStatus
    message: str | None = None
    cleanup_errors: list[str] = Field(default_factory=list)
    entries: list[CatalogEntry] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when the case passed or was skipped."""
        return self.status in (CaseStatus.PASSED, CaseStatus.SKIPPED)
