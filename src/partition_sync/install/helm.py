"""Consul installation through the Helm CLI."""

from __future__ import annotations

import logging
import subprocess
from typing import TYPE_CHECKING

from partition_sync.models import Partition, PartitionRole
from partition_sync.utils.errors import InstallationError

if TYPE_CHECKING:
    from partition_sync.config import PartitionSyncConfig
    from partition_sync.scenario.environment import ClusterContext

logger = logging.getLogger(__name__)


class HelmInstaller:
    """Installs and uninstalls Consul releases with ``helm``.

    Installation blocks until Helm reports the release ready. Failures are
    fatal and never retried.
    """

    def __init__(self, config: PartitionSyncConfig, helm_binary: str = "helm") -> None:
        self._config = config
        self._helm = helm_binary

    def _base_args(self, cluster: ClusterContext) -> list[str]:
        args = [
            "--kubeconfig",
            str(self._config.effective_kubeconfig_path),
            "--namespace",
            cluster.namespace,
        ]
        if cluster.kube_context:
            args.extend(["--kube-context", cluster.kube_context])
        return args

    def _run(self, args: list[str]) -> str:
        cmd = [self._helm, *args]
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=True)
        except subprocess.CalledProcessError as e:
            raise InstallationError(
                f"'{' '.join(cmd[:3])}' failed with exit code {e.returncode}: {e.stderr.strip()}"
            ) from e
        except OSError as e:
            raise InstallationError(f"Failed to run {self._helm}: {e}") from e
        return result.stdout

    def install(
        self,
        cluster: ClusterContext,
        release_name: str,
        values: dict[str, str],
        partition_name: str,
        role: PartitionRole,
    ) -> Partition:
        """Install a release and wait for it to become ready.

        Raises:
            InstallationError: If helm exits with an error.
        """
        args = ["install", release_name, self._config.helm_chart, "--wait"]
        args.extend(["--timeout", self._config.helm_timeout])
        if self._config.helm_chart_version:
            args.extend(["--version", self._config.helm_chart_version])
        for key in sorted(values):
            args.extend(["--set", f"{key}={values[key]}"])
        args.extend(self._base_args(cluster))

        logger.info(
            f"Installing {role.value} partition '{partition_name}' "
            f"as release {release_name} in the {cluster.name} cluster"
        )
        self._run(args)
        logger.info(f"Release {release_name} is ready in the {cluster.name} cluster")

        return Partition(
            name=partition_name,
            role=role,
            context=cluster.name,
            release_name=release_name,
            namespace=cluster.namespace,
        )

    def uninstall(self, cluster: ClusterContext, partition: Partition) -> None:
        """Uninstall a release and delete what Helm leaves behind.

        Persistent volume claims and secrets generated by the chart's jobs
        are not owned by the release and are removed by label.
        """
        logger.info(f"Uninstalling release {partition.release_name} from the {cluster.name} cluster")
        self._run(["uninstall", partition.release_name, "--wait", *self._base_args(cluster)])

        selector = f"release={partition.release_name}"
        cluster.k8s.delete_pvcs(cluster.namespace, selector)
        cluster.k8s.delete_secrets(cluster.namespace, selector)
