"""Configuration management for partition-sync."""

import os
from enum import Enum
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogLevel(str, Enum):
    """Logging level."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class PartitionSyncConfig(BaseSettings):
    """Configuration for partition federation runs.

    Configuration is loaded from environment variables with PARTITION_SYNC_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="PARTITION_SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Cluster access
    kubeconfig_path: Path | None = Field(
        default=None,
        description="Path to kubeconfig file (defaults to ~/.kube/config)",
    )
    primary_context: str | None = Field(
        default=None,
        description="Kubeconfig context of the cluster hosting the primary partition",
    )
    secondary_context: str | None = Field(
        default=None,
        description="Kubeconfig context of the cluster hosting the secondary partition",
    )
    kube_namespace: str = Field(
        default="default",
        description="Kubernetes namespace Consul is installed into",
    )
    workload_namespace: str = Field(
        default="ns1",
        description="Scratch namespace the static-server workload is deployed into",
    )

    # Helm
    helm_chart: str = Field(
        default="hashicorp/consul",
        description="Helm chart reference used to install Consul",
    )
    helm_chart_version: str | None = Field(
        default=None,
        description="Helm chart version (latest when unset)",
    )
    helm_timeout: str = Field(
        default="15m",
        description="Timeout passed to helm install --wait",
    )
    consul_image: str | None = Field(
        default=None,
        description="Override for global.image",
    )
    consul_k8s_image: str | None = Field(
        default=None,
        description="Override for global.imageK8S",
    )
    enterprise_license_secret_name: str | None = Field(
        default=None,
        description="Secret holding the Consul Enterprise license",
    )
    enterprise_license_secret_key: str | None = Field(
        default=None,
        description="Key of the license within the license secret",
    )

    # Platform
    enable_enterprise: bool = Field(
        default=False,
        description="Consul Enterprise is installed (admin partitions require it)",
    )
    use_kind: bool = Field(
        default=False,
        description="Clusters are kind clusters sharing a docker network",
    )
    enable_transparent_proxy: bool = Field(
        default=False,
        description="Enable DNS redirection for transparent proxy",
    )
    no_cleanup_on_failure: bool = Field(
        default=False,
        description="Leave resources in place when a case fails",
    )

    # Retry budgets
    convergence_attempts: int = Field(
        default=20,
        ge=1,
        description="Catalog convergence poll attempts",
    )
    convergence_wait_seconds: float = Field(
        default=30.0,
        ge=0,
        description="Wait between catalog convergence attempts",
    )
    token_check_attempts: int = Field(
        default=30,
        ge=1,
        description="Access token deletion poll attempts",
    )
    token_check_wait_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Wait between access token deletion attempts",
    )
    service_host_attempts: int = Field(
        default=60,
        ge=1,
        description="Attempts to wait for a load balancer address",
    )
    service_host_wait_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Wait between load balancer address attempts",
    )

    # Consul HTTP API
    consul_request_timeout: int = Field(
        default=30,
        ge=1,
        le=120,
        description="Consul HTTP API request timeout in seconds",
    )

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level",
    )

    @field_validator("kubeconfig_path", mode="before")
    @classmethod
    def resolve_kubeconfig_path(cls, v: str | Path | None) -> Path | None:
        """Resolve kubeconfig path, expanding the user directory."""
        if v is None:
            return None
        return Path(v).expanduser().resolve()

    @property
    def effective_kubeconfig_path(self) -> Path:
        """Get the effective kubeconfig path, with default."""
        if self.kubeconfig_path:
            return self.kubeconfig_path
        env_path = os.environ.get("KUBECONFIG")
        if env_path:
            return Path(env_path).expanduser().resolve()
        return Path.home() / ".kube" / "config"

    def validate_kube_config(self) -> list[str]:
        """Validate cluster access configuration and return any warnings."""
        warnings = []

        if self.kubeconfig_path and not self.kubeconfig_path.exists():
            raise ValueError(f"Kubeconfig file not found: {self.kubeconfig_path}")

        if not self.effective_kubeconfig_path.exists():
            warnings.append(f"No kubeconfig found at {self.effective_kubeconfig_path}")

        if self.primary_context is None and self.secondary_context is None:
            warnings.append(
                "Primary and secondary contexts are both unset; "
                "both partitions will be installed into the current context"
            )
        elif self.primary_context == self.secondary_context:
            warnings.append(
                f"Primary and secondary partitions share context '{self.primary_context}'"
            )

        return warnings

